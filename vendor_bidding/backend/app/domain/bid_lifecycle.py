# backend/app/domain/bid_lifecycle.py
from __future__ import annotations

from ..models import BidStatus, ProjectStatus
from .errors import ConflictError

# PENDING is the only state with outgoing edges.
TRANSITIONS: dict[str, frozenset[str]] = {
    BidStatus.PENDING.value: frozenset(
        {BidStatus.ACCEPTED.value, BidStatus.REJECTED.value, BidStatus.WITHDRAWN.value}
    ),
    BidStatus.ACCEPTED.value: frozenset(),
    BidStatus.REJECTED.value: frozenset(),
    BidStatus.WITHDRAWN.value: frozenset(),
}

TERMINAL = frozenset(s for s, nxt in TRANSITIONS.items() if not nxt)

# statuses a manager may choose when deciding a bid
DECISIONS = frozenset({BidStatus.ACCEPTED.value, BidStatus.REJECTED.value})

# project statuses in which a decision can still award the project
AWARDABLE_PROJECT_STATUSES = frozenset({ProjectStatus.OPEN.value, ProjectStatus.IN_REVIEW.value})


def _s(v) -> str:
    return v.value if isinstance(v, BidStatus) else str(v)


def can_transition(current, target) -> bool:
    return _s(target) in TRANSITIONS.get(_s(current), frozenset())


def ensure_transition(current, target) -> None:
    cur, tgt = _s(current), _s(target)
    if not can_transition(cur, tgt):
        raise ConflictError(f"bid cannot move from {cur} to {tgt}")


def ensure_editable(current) -> None:
    if _s(current) != BidStatus.PENDING.value:
        raise ConflictError(f"bid is {_s(current)}; only PENDING bids can be changed")


def ensure_project_accepts_bids(project_status) -> None:
    st = project_status.value if isinstance(project_status, ProjectStatus) else str(project_status)
    if st != ProjectStatus.OPEN.value:
        raise ConflictError(f"project is {st}; bids are only accepted while OPEN")

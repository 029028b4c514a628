# backend/tests/test_bid_lifecycle.py
from __future__ import annotations

import pytest

from app.domain.bid_lifecycle import (
    TERMINAL,
    can_transition,
    ensure_editable,
    ensure_project_accepts_bids,
    ensure_transition,
)
from app.domain.errors import ConflictError
from app.models import BidStatus, ProjectStatus


@pytest.mark.parametrize("target", ["ACCEPTED", "REJECTED", "WITHDRAWN"])
def test_pending_moves_to_every_terminal_state(target):
    assert can_transition(BidStatus.PENDING, target)


def test_terminal_states_never_move():
    assert TERMINAL == {"ACCEPTED", "REJECTED", "WITHDRAWN"}
    for cur in TERMINAL:
        for tgt in BidStatus:
            assert not can_transition(cur, tgt)


def test_ensure_transition_raises_conflict():
    with pytest.raises(ConflictError):
        ensure_transition("ACCEPTED", "REJECTED")
    with pytest.raises(ConflictError):
        ensure_transition("PENDING", "PENDING")


def test_only_pending_bids_are_editable():
    ensure_editable("PENDING")
    with pytest.raises(ConflictError):
        ensure_editable(BidStatus.WITHDRAWN)


@pytest.mark.parametrize("status", [s for s in ProjectStatus if s != ProjectStatus.OPEN])
def test_only_open_projects_accept_bids(status):
    ensure_project_accepts_bids(ProjectStatus.OPEN)
    with pytest.raises(ConflictError):
        ensure_project_accepts_bids(status)

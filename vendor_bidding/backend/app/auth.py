# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .db import get_db
from .domain.errors import AuthenticationError, AuthorizationError
from .services.identity_service import resolve_token


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: str  # PROPERTY_MANAGER | VENDOR | ADMIN


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not str(authorization).lower().startswith("bearer "):
        raise AuthenticationError("no token provided")
    token = str(authorization).split(" ", 1)[1].strip()
    if not token:
        raise AuthenticationError("no token provided")
    return token


def principal_for_token(db: Session, token: str) -> Principal:
    user = resolve_token(db, token)
    return Principal(user_id=int(user.id), email=str(user.email), role=str(user.role))


def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Resolve `Authorization: Bearer <token>` through the identity provider.
    The principal is also stashed on request.state for the access log.
    """
    p = principal_for_token(db, bearer_token(authorization))
    request.state.principal = p
    return p


def require_roles(*roles: str):
    allowed = {str(getattr(r, "value", r)) for r in roles}

    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if p.role not in allowed:
            raise AuthorizationError(f"requires role in {sorted(allowed)}")
        return p

    return _dep

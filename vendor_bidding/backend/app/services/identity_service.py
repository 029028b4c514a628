# backend/app/services/identity_service.py
"""
Local identity provider: issues and resolves bearer tokens.

The rest of the backend only calls register_user / login_user /
resolve_token; nothing else reads token claims.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt  # PyJWT
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.errors import AuthenticationError, ConflictError, ValidationError
from ..models import Role, User

log = logging.getLogger("bidding.identity")

SELF_SERVICE_ROLES = {Role.PROPERTY_MANAGER.value, Role.VENDOR.value}


def _now() -> datetime:
    return datetime.utcnow()


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(os.getenv("AUTH_PBKDF2_ITERS", "210000"))
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    salt = base64.b64decode(salt_b64.encode())
    dk = base64.b64decode(dk_b64.encode())
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iters_s))
    return hmac.compare_digest(test, dk)


def create_access_token(*, user_id: int, role: str, minutes: Optional[int] = None) -> str:
    now = _now()
    exp_minutes = int(minutes if minutes is not None else settings.jwt_exp_minutes)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": str(role),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])


def resolve_token(db: Session, token: str) -> User:
    """Token -> User. Any problem with the token is an AuthenticationError."""
    try:
        claims = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("invalid token")

    sub = str(claims.get("sub") or "")
    if not sub.isdigit():
        raise AuthenticationError("token missing subject")

    user = db.get(User, int(sub))
    if user is None:
        raise AuthenticationError("user not found")
    return user


def register_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str,
    phone: Optional[str] = None,
    company: Optional[str] = None,
) -> tuple[User, str]:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("a valid email is required")
    if len(password or "") < settings.min_password_length:
        raise ValidationError(f"password must be at least {settings.min_password_length} characters")
    if not (first_name or "").strip() or not (last_name or "").strip():
        raise ValidationError("first_name and last_name are required")
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("role must be PROPERTY_MANAGER or VENDOR")

    if db.scalar(select(User.id).where(User.email == email)) is not None:
        raise ConflictError("email already registered")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        company=company,
        role=role,
        verified=False,
        created_at=_now(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same email
        db.rollback()
        raise ConflictError("email already registered")
    db.refresh(user)

    log.info("user registered", extra={"user_id": user.id})
    return user, create_access_token(user_id=user.id, role=user.role)


def login_user(db: Session, *, email: str, password: str) -> tuple[User, str]:
    email = (email or "").strip().lower()
    user = db.scalar(select(User).where(User.email == email))
    if user is None or not user.password_hash or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("invalid credentials")
    return user, create_access_token(user_id=user.id, role=user.role)


def update_profile(db: Session, *, user: User, changes: dict[str, Any]) -> User:
    # role and email are not editable here
    for k in ("first_name", "last_name"):
        v = changes.get(k)
        if v is not None:
            if not str(v).strip():
                raise ValidationError(f"{k} cannot be blank")
            setattr(user, k, str(v).strip())
    for k in ("phone", "company"):
        if k in changes:
            setattr(user, k, changes[k])

    db.add(user)
    db.commit()
    db.refresh(user)
    return user

# backend/app/routers/users.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.errors import NotFoundError
from ..models import User
from ..schemas import ProfileUpdate, UserOut
from ..services.identity_service import update_profile

router = APIRouter(prefix="/users", tags=["users"])


def _me(db: Session, p: Principal) -> User:
    user = db.get(User, p.user_id)
    if user is None:
        raise NotFoundError("user not found")
    return user


@router.get("/profile", response_model=UserOut)
def get_profile(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _me(db, p)


@router.put("/profile", response_model=UserOut)
def put_profile(payload: ProfileUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return update_profile(db, user=_me(db, p), changes=payload.model_dump(exclude_unset=True))

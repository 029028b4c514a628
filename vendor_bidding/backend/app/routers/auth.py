# backend/app/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.errors import NotFoundError
from ..models import User
from ..schemas import AuthOut, LoginIn, RegisterIn, UserOut
from ..services.identity_service import login_user, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthOut, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    """
    Self-service sign-up for managers and vendors.
    Admin accounts are provisioned out of band.
    """
    user, token = register_user(db, **payload.model_dump())
    return {"user": user, "token": token}


@router.post("/login", response_model=AuthOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user, token = login_user(db, email=payload.email, password=payload.password)
    return {"user": user, "token": token}


@router.get("/me", response_model=UserOut)
def me(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    user = db.get(User, p.user_id)
    if user is None:
        raise NotFoundError("user not found")
    return user

# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Any

from pydantic import BaseModel, ConfigDict


# -------------------- Identity --------------------

class RegisterIn(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    role: str = "VENDOR"  # PROPERTY_MANAGER | VENDOR
    phone: Optional[str] = None
    company: Optional[str] = None


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    company: Optional[str] = None
    role: str
    verified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthOut(BaseModel):
    user: UserOut
    token: str


class ProfileUpdate(BaseModel):
    # role and email are deliberately absent; unknown keys are rejected
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


# -------------------- Properties --------------------

class PropertyCreate(BaseModel):
    name: str
    address: str
    city: str
    state: str
    zip_code: str


class PropertyUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class PropertyOut(PropertyCreate):
    id: int
    manager_id: int
    created_at: datetime
    updated_at: datetime

    # filled by the list endpoint
    project_count: int = 0

    model_config = ConfigDict(from_attributes=True)


# -------------------- Projects --------------------

class ProjectCreate(BaseModel):
    property_id: int
    title: str
    description: str
    type: str = "OTHER"
    status: Optional[str] = None  # DRAFT | OPEN (default OPEN)
    budget: Optional[float] = None
    timeline: Optional[str] = None
    deadline: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    budget: Optional[float] = None
    timeline: Optional[str] = None
    deadline: Optional[datetime] = None


# -------------------- Bids --------------------

class BidCreate(BaseModel):
    project_id: int
    amount: float
    description: str
    timeline: str
    notes: Optional[str] = None


class BidUpdate(BaseModel):
    amount: Optional[float] = None
    description: Optional[str] = None
    timeline: Optional[str] = None
    notes: Optional[str] = None


# -------------------- Documents --------------------

class DocumentOut(BaseModel):
    id: int
    file_name: str
    file_size: int
    mime_type: str
    project_id: Optional[int] = None
    bid_id: Optional[int] = None
    uploaded_by: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentLinkOut(DocumentOut):
    url: str
    expires_at: datetime


# -------------------- Messages --------------------

class MessageCreate(BaseModel):
    receiver_id: int
    content: str
    project_id: Optional[int] = None


class ConversationOut(BaseModel):
    partner_id: int
    partner: Optional[dict[str, Any]] = None
    last_message: dict[str, Any]
    unread_count: int


# -------------------- Notifications --------------------

class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: str
    link: Optional[str] = None
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CountOut(BaseModel):
    count: int


class OkOut(BaseModel):
    ok: bool = True
    updated: int = 0

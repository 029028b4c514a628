# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.auth import Principal
from app.db import SessionLocal
from app.models import Bid, Project, Property, Role, User
from app.services import bid_service, project_service, property_service
from app.services.identity_service import register_user

DEMO_PASSWORD = "demo-password"


@dataclass(frozen=True)
class SeedResult:
    manager_email: str
    vendor_emails: tuple[str, ...]
    property_id: int
    project_id: int
    bid_ids: tuple[int, ...]


def _principal(u: User) -> Principal:
    return Principal(user_id=int(u.id), email=str(u.email), role=str(u.role))


def _get_or_create_user(db: Session, *, email: str, first: str, last: str, role: Role, company: str) -> User:
    row = db.scalar(select(User).where(User.email == email))
    if row:
        return row
    row, _ = register_user(
        db,
        email=email,
        password=DEMO_PASSWORD,
        first_name=first,
        last_name=last,
        role=role.value,
        company=company,
    )
    return row


def seed_demo(
    *,
    domain: str = "demo.local",
    property_name: str = "Oak Tower",
    project_title: str = "Roof Repair",
    amounts: tuple[float, float] = (5000.0, 4500.0),
) -> SeedResult:
    """
    One manager, two vendors, a property with one OPEN project and a bid from
    each vendor. Safe to run twice: existing rows are reused.
    """
    db = SessionLocal()
    try:
        manager = _get_or_create_user(
            db, email=f"manager@{domain}", first="Morgan", last="Reyes", role=Role.PROPERTY_MANAGER, company="Oak Holdings"
        )
        vendors = [
            _get_or_create_user(
                db, email=f"vendor{i}@{domain}", first="Vendor", last=str(i), role=Role.VENDOR, company=f"Roofing Co {i}"
            )
            for i in (1, 2)
        ]
        mp = _principal(manager)

        prop = db.scalar(select(Property).where(Property.manager_id == manager.id, Property.name == property_name))
        if prop is None:
            prop = property_service.create_property(
                db,
                mp,
                {"name": property_name, "address": "100 Oak St", "city": "Springfield", "state": "IL", "zip_code": "62701"},
            )

        project = db.scalar(select(Project).where(Project.property_id == prop.id, Project.title == project_title))
        if project is None:
            project = project_service.create_project(
                db,
                mp,
                {
                    "property_id": prop.id,
                    "title": project_title,
                    "description": "Replace damaged shingles and flashing on the north face.",
                    "type": "MAINTENANCE",
                    "budget": 6000,
                },
            )

        bid_ids = []
        for vendor, amount in zip(vendors, amounts):
            bid = db.scalar(select(Bid).where(Bid.project_id == project.id, Bid.vendor_id == vendor.id))
            if bid is None:
                bid = bid_service.submit_bid(
                    db,
                    _principal(vendor),
                    {"project_id": project.id, "amount": amount, "description": "Full repair", "timeline": "2 weeks"},
                )
            bid_ids.append(int(bid.id))

        return SeedResult(
            manager_email=str(manager.email),
            vendor_emails=tuple(str(v.email) for v in vendors),
            property_id=int(prop.id),
            project_id=int(project.id),
            bid_ids=tuple(bid_ids),
        )
    finally:
        db.close()

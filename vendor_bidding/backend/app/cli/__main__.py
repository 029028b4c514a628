# backend/app/cli/__main__.py
from __future__ import annotations

import argparse

from app.cli.seed_demo import DEMO_PASSWORD, seed_demo
from app.db import Base, engine


def main() -> None:
    p = argparse.ArgumentParser(description="Seed a demo marketplace")
    p.add_argument("--domain", default="demo.local")
    p.add_argument("--property-name", default="Oak Tower")
    p.add_argument("--project-title", default="Roof Repair")
    p.add_argument("--create-tables", action="store_true", help="create tables without running migrations")
    args = p.parse_args()

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    out = seed_demo(domain=args.domain, property_name=args.property_name, project_title=args.project_title)
    print(
        {
            "ok": True,
            "manager_email": out.manager_email,
            "vendor_emails": list(out.vendor_emails),
            "password": DEMO_PASSWORD,
            "property_id": out.property_id,
            "project_id": out.project_id,
            "bid_ids": list(out.bid_ids),
        }
    )


if __name__ == "__main__":
    main()

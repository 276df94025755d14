#!/usr/bin/env python
"""Seed an approved ADMIN sales account.

Usage:
    python scripts/seed_admin.py --phone 13800000000 --password 'change-me'

ADMIN_PHONE / ADMIN_PASSWORD environment variables work as well.
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from crm.core.password import hash_password
from crm.core.phone import normalize_phone
from crm.persistence.database import AsyncSessionLocal, engine, transaction
from crm.persistence.models.sales import ApprovalStatus, Sales, SalesRole
from crm.persistence.repositories.sales_repository import SalesRepository


async def seed_admin(phone: str, password: str, name: str) -> None:
    """Create the admin account unless the phone is already registered."""
    normalized = normalize_phone(phone)
    if normalized is None:
        print(f"Invalid phone number: {phone}")
        sys.exit(1)

    async with AsyncSessionLocal() as session:
        repo = SalesRepository(session)
        existing = await repo.get_by_phone(normalized)
        if existing:
            print(f"Account already exists: {normalized} (role={existing.role.value})")
            return

        async with transaction(session):
            session.add(
                Sales(
                    phone=normalized,
                    name=name,
                    hashed_password=hash_password(password),
                    role=SalesRole.ADMIN,
                    enabled=True,
                    approval_status=ApprovalStatus.APPROVED,
                    approved_by_phone=normalized,
                    approved_at=datetime.utcnow(),
                )
            )

    await engine.dispose()
    print(f"Created admin account: {normalized}")
    print("Please change this password after first login!")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create an approved ADMIN account")
    parser.add_argument("--phone", default=os.environ.get("ADMIN_PHONE"))
    parser.add_argument("--password", default=os.environ.get("ADMIN_PASSWORD"))
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    if not args.phone or not args.password:
        parser.error("--phone and --password (or ADMIN_PHONE / ADMIN_PASSWORD) are required")

    asyncio.run(seed_admin(args.phone, args.password, args.name))


if __name__ == "__main__":
    main()

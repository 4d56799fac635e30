"""
Seed Super Admin User

Creates the initial super admin for the School ERP platform.
Run this script once to set up the admin account.

Usage:
    cd apps/api
    SEED_ADMIN_EMAIL=admin@example.com SEED_ADMIN_PASSWORD=... \
        python scripts/seed_super_admin.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from school_erp.core.database import async_session_maker, close_db, init_db  # noqa: E402
from school_erp.core.security import hash_password  # noqa: E402
from school_erp.modules.users.models import UserRole  # noqa: E402
from school_erp.modules.users.repository import UserRepository  # noqa: E402


async def seed_super_admin() -> None:
    """Create the super admin user if it doesn't exist."""
    email = os.environ.get("SEED_ADMIN_EMAIL", "").strip().lower()
    password = os.environ.get("SEED_ADMIN_PASSWORD", "")
    first_name = os.environ.get("SEED_ADMIN_FIRST_NAME", "Super")
    last_name = os.environ.get("SEED_ADMIN_LAST_NAME", "Admin")

    if not email or len(password) < 8:
        print("Set SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD (min 8 characters).")
        sys.exit(1)

    await init_db()

    async with async_session_maker() as db:
        existing_user = await UserRepository.get_by_email(db, email)
        if existing_user:
            print(f"Super admin already exists: {email}")
            print(f"  ID: {existing_user.id}")
            print(f"  Role: {existing_user.role.value}")
            return

        admin_user = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.SUPER_ADMIN,
            school_id=None,  # Super admins have no school
        )

        print("Super admin created successfully!")
        print(f"  Email: {email}")
        print(f"  Name: {admin_user.full_name}")
        print(f"  ID: {admin_user.id}")

    await close_db()


if __name__ == "__main__":
    asyncio.run(seed_super_admin())

"""
Seed script to create the first ADMIN account.

Run once (e.g. after schema_check) with env set:
  ADMIN_EMAIL=admin@yourschool.ac.ug
  ADMIN_PASSWORD=YourSecurePassword

Usage: python -m app.db.seed_admin
"""
import asyncio
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import hash_password
from app.core.config import settings
from app.core.enums import Role
from app.db.session import AsyncSessionLocal

DEFAULT_ADMIN_FULL_NAME = "School Admin"


async def seed_admin(
    db: AsyncSession,
    email: Optional[str],
    password: Optional[str],
    full_name: str = DEFAULT_ADMIN_FULL_NAME,
) -> Optional[User]:
    """Create the ADMIN user, or promote and reset an existing account with that email."""
    if not email or not password:
        print("No ADMIN_EMAIL/ADMIN_PASSWORD; skipping admin user.")
        return None

    email = email.strip().lower()
    result = await db.execute(select(User).where(func.lower(User.email) == email))
    admin = result.scalar_one_or_none()
    if not admin:
        admin = User(
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
            role=Role.ADMIN.value,
            status="ACTIVE",
        )
        db.add(admin)
        print("Created ADMIN user:", email)
    else:
        admin.role = Role.ADMIN.value
        admin.status = "ACTIVE"
        admin.password_hash = hash_password(password)
        print("Updated existing user to ADMIN:", email)

    await db.commit()
    return admin


async def main() -> None:
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db, settings.admin_email, settings.admin_password)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())

"""
Admin bootstrap

Creates the configured society admin (verified, ready to log in) if no
user with that email exists yet.
Run with: python -m app.db.create_admin
"""
import asyncio
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import AsyncSessionLocal, init_db
from app.core.security import get_password_hash
from app.models.user import User, UserRole


async def ensure_admin(
    db: AsyncSession,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> Tuple[User, bool]:
    """Return (admin, created)"""
    email = (email or settings.ADMIN_EMAIL).lower()

    result = await db.execute(select(User).where(User.email == email))
    existing = result.scalar_one_or_none()
    if existing:
        return existing, False

    admin = User(
        full_name=settings.ADMIN_FULL_NAME,
        email=email,
        phone_no=settings.ADMIN_PHONE_NO,
        hashed_password=get_password_hash(password or settings.ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
        is_verified=True,
    )
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    return admin, True


async def create_admin():
    await init_db()
    async with AsyncSessionLocal() as db:
        try:
            admin, created = await ensure_admin(db)
        except Exception as e:
            await db.rollback()
            print(f"Error creating admin: {e}")
            raise

    if created:
        print(f"Admin user created successfully: {admin.email}")
    else:
        print("Admin user already exists")


def main():
    asyncio.run(create_admin())


if __name__ == "__main__":
    main()

"""
Seed script to create (or reset) the first admin user.

Run once after init_db with env set:
  BOOTSTRAP_ADMIN_EMAIL=admin@college.edu
  BOOTSTRAP_ADMIN_PASSWORD=YourSecurePassword
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.security import hash_password
from app.auth.services import create_user, get_user_by_email
from app.core.config import settings
from app.core.enums import UserRole
from app.core.logging import configure_logging
from app.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_FULL_NAME = "Administrator"


async def seed_admin(db: AsyncSession, email: str, password: str) -> None:
    email = email.strip().lower()
    user = await get_user_by_email(db, email)
    if user is None:
        await create_user(
            db, email=email, password=password, full_name=DEFAULT_ADMIN_FULL_NAME, role=UserRole.ADMIN.value
        )
        logger.info("Created admin user %s", email)
        return
    user.role = UserRole.ADMIN.value
    user.password_hash = hash_password(password)
    user.is_active = True
    await db.commit()
    logger.info("Updated existing user %s to admin", email)


async def main() -> None:
    configure_logging(settings.log_level)
    email = settings.bootstrap_admin_email
    password = settings.bootstrap_admin_password
    if not email or not password:
        logger.warning("BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD not set; nothing to seed")
        return
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db, email, password)
        except Exception:
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(main())

"""
Seed script to create (or reset) the default admin account.

Run once after schema_check with env set:
  DEFAULT_ADMIN_EMAIL=admin@yourschool.com
  DEFAULT_ADMIN_PASSWORD=YourSecurePassword
  DEFAULT_ADMIN_SCHOOL="Your School"
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from schoolfees.auth.models import User
from schoolfees.auth.security import hash_password
from schoolfees.auth.services import get_user_by_email
from schoolfees.core.config import settings
from schoolfees.core.enums import UserRole
from schoolfees.core.logging import configure_logging
from schoolfees.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_NAME = "Default Admin"


async def seed_default_admin(db: AsyncSession) -> None:
    email = settings.default_admin_email
    password = settings.default_admin_password
    if not email or not password:
        logger.info("No DEFAULT_ADMIN_EMAIL/DEFAULT_ADMIN_PASSWORD; skipping default admin.")
        return

    user = await get_user_by_email(db, email)
    if not user:
        db.add(
            User(
                email=email.lower(),
                name=DEFAULT_ADMIN_NAME,
                school_name=settings.default_admin_school,
                role=UserRole.ADMIN.value,
                password_hash=hash_password(password),
                status="ACTIVE",
            )
        )
        logger.info("Created default admin %s", email)
    else:
        user.role = UserRole.ADMIN.value
        user.password_hash = hash_password(password)
        user.status = "ACTIVE"
        logger.info("Reset existing user %s to admin", email)
    await db.commit()


async def main() -> None:
    configure_logging(settings.log_level)
    async with AsyncSessionLocal() as db:
        try:
            await seed_default_admin(db)
        except Exception:
            await db.rollback()
            logger.exception("Default admin seed failed")
            raise


if __name__ == "__main__":
    asyncio.run(main())

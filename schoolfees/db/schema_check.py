"""
Create any missing tables.

Run once against a fresh database:
  python -m schoolfees.db.schema_check
"""
import asyncio
import logging

from schoolfees.auth import models as auth_models  # noqa: F401  registers users table
from schoolfees.core import models as core_models  # noqa: F401  registers students/payments tables
from schoolfees.core.config import settings
from schoolfees.core.logging import configure_logging
from schoolfees.db.session import Base, engine

logger = logging.getLogger(__name__)


async def ensure_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def main() -> None:
    configure_logging(settings.log_level)
    try:
        await ensure_schema()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

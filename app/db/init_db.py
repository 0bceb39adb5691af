"""
Create every table the models declare (no-op for tables that already exist).

Run once against a fresh database:
  python -m app.db.init_db
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

import app.auth.models  # noqa: F401  registers users / refresh_tokens
import app.core.models  # noqa: F401
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables ensured: %s", ", ".join(sorted(Base.metadata.tables)))


async def main() -> None:
    configure_logging(settings.log_level)
    await create_tables(engine)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

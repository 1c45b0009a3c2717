"""
Schema setup applied once at startup when AUTO_MIGRATE is enabled.
"""
from sqlalchemy.ext.asyncio import AsyncEngine

from core.database import Base
from core.logging import StructuredLogger

# Registers the mapped tables on Base.metadata
import models  # noqa: F401


async def apply_migrations(engine: AsyncEngine, logger: StructuredLogger) -> None:
    """Creates missing tables and indexes. Existing tables are left as they are."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(
        "Database schema applied",
        metadata={"tables": sorted(Base.metadata.tables.keys())},
    )

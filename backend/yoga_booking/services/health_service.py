"""
Health probes. Stateless: the caller injects the session, nothing is kept
between calls.
"""

import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.config import get_settings
from yoga_booking.core.logging import get_logger
from yoga_booking.services.cache_service import get_cache_stats

logger = get_logger(__name__)
settings = get_settings()


async def check_database(db: AsyncSession) -> dict:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
        await db.rollback()
    except SQLAlchemyError as e:
        logger.error("database_health_check_failed", error=str(e))
        return {
            "status": "unhealthy",
            "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
            "error": str(e),
        }

    elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
    return {
        "status": "healthy" if elapsed_ms < settings.HEALTH_DEGRADED_AFTER_MS else "degraded",
        "response_time_ms": elapsed_ms,
    }


async def health_report(db: AsyncSession, version: str, environment: str) -> dict:
    database = await check_database(db)
    return {
        "status": database["status"],
        "version": version,
        "environment": environment,
        "database": database,
        "cache": await get_cache_stats(),
    }

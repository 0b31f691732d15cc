import asyncio
import logging
from sqlalchemy.orm import Session
from app.core.config import settings
from app.database.connection import SessionLocal, init_db
from app.schemas.system import CleanupResult
from app.services.cleanup_service import cleanup_stale_trips

logger = logging.getLogger(__name__)


def get_db_session() -> Session:
    return SessionLocal()


# ---------- SHOPPING LIST CLEANUP ----------

async def cleanup_scheduler_loop():
    """
    Loop that runs the shopping list cleanup every CLEANUP_INTERVAL_SECONDS.
    """
    while True:
        try:
            await run_cleanup()
        except Exception:
            logger.exception("Cleanup scheduler run failed")
        await asyncio.sleep(settings.CLEANUP_INTERVAL_SECONDS)


async def run_cleanup() -> CleanupResult:
    return await asyncio.to_thread(run_cleanup_once)


def run_cleanup_once() -> CleanupResult:
    """
    One cleanup pass in its own session, for the loop or an external cron.
    """
    db = get_db_session()
    try:
        return cleanup_stale_trips(db)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    init_db()
    result = run_cleanup_once()
    logger.info("Cleanup finished: %s", result.model_dump())

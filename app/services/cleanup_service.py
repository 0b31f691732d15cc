import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.models.shopping_list import ListItem, ShoppingListEvent
from app.models.trip import Trip
from app.schemas.system import CleanupResult

logger = logging.getLogger(__name__)


def stale_trips(db: Session, cutoff: datetime) -> List[Trip]:
    return (
        db.query(Trip)
        .filter(Trip.ended_at.isnot(None), Trip.ended_at < cutoff)
        .all()
    )


def recently_checked(db: Session, cutoff: datetime) -> Set[Tuple[str, str]]:
    rows = (
        db.query(ShoppingListEvent.household_code, ShoppingListEvent.item_name)
        .join(Trip, Trip.id == ShoppingListEvent.trip_id)
        .filter(or_(Trip.ended_at.is_(None), Trip.ended_at >= cutoff))
        .distinct()
        .all()
    )
    return {(r.household_code, r.item_name) for r in rows}


def cleanup_stale_trips(db: Session, now: Optional[datetime] = None) -> CleanupResult:
    """
    Removes checked list items belonging to trips closed more than
    CLEANUP_GRACE_HOURS ago. The grace period outlasts the trip re-open
    window, so a trip that can still be re-opened is never touched.

    Running it again with nothing new to clean is a no-op.
    """
    now = now or utcnow()
    cutoff = now - timedelta(hours=settings.CLEANUP_GRACE_HOURS)

    logger.info("Cleanup started, looking for trips ended before %s", cutoff.isoformat())

    trips = stale_trips(db, cutoff)
    if not trips:
        logger.info("Cleanup: no old trips, nothing to clean")
        return CleanupResult(message="No trips to clean")

    trip_ids = [t.id for t in trips]
    logger.info("Cleanup: %d old trip(s)", len(trip_ids))

    events = (
        db.query(ShoppingListEvent.household_code, ShoppingListEvent.item_name)
        .filter(
            ShoppingListEvent.trip_id.in_(trip_ids),
            ShoppingListEvent.checked_at.isnot(None),
        )
        .all()
    )
    if not events:
        logger.info("Cleanup: no checked items in old trips")
        return CleanupResult(trips_processed=len(trip_ids), message="No items to clean")

    # items checked on a trip that is still open or inside the grace period stay
    recent = recently_checked(db, cutoff)

    total_deleted = 0
    by_household: Dict[str, int] = {}

    for event in events:
        if (event.household_code, event.item_name) in recent:
            continue
        try:
            deleted = (
                db.query(ListItem)
                .filter(
                    ListItem.household_code == event.household_code,
                    ListItem.item_name == event.item_name,
                    ListItem.checked.is_(True),
                )
                .delete(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error("Cleanup: error deleting %r", event.item_name, exc_info=True)
            continue

        if deleted:
            total_deleted += deleted
            by_household[event.household_code] = by_household.get(event.household_code, 0) + deleted

    logger.info("Cleanup: removed %d checked item(s) %s", total_deleted, by_household)

    return CleanupResult(
        trips_processed=len(trip_ids),
        items_cleaned=total_deleted,
        by_household=by_household,
    )

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow, start_of_day
from app.core.config import settings
from app.models.shopping_list import ListItem, ShoppingListEvent
from app.models.trip import Trip
from app.schemas.trip import TripSummaryResponse
from app.services.store_service import get_store

logger = logging.getLogger(__name__)


def _open_trips(db: Session, household_code: str, store_id: int):
    return db.query(Trip).filter(
        Trip.household_code == household_code,
        Trip.store_id == store_id,
        Trip.ended_at.is_(None),
    )


def get_trip(db: Session, trip_id: int) -> Optional[Trip]:
    return db.query(Trip).filter(Trip.id == trip_id).first()


def find_open_trip(db: Session, household_code: str, store_id: int) -> Optional[Trip]:
    return _open_trips(db, household_code, store_id).order_by(Trip.started_at.desc()).first()


def find_open_trip_today(
    db: Session, household_code: str, store_id: int, now: datetime
) -> Optional[Trip]:
    return (
        _open_trips(db, household_code, store_id)
        .filter(Trip.started_at >= start_of_day(now))
        .order_by(Trip.started_at.desc())
        .first()
    )


def find_reopenable_trip(
    db: Session, household_code: str, store_id: int, now: datetime
) -> Optional[Trip]:
    """
    A trip started today and closed no more than the grace window ago.
    """
    grace_start = now - timedelta(minutes=settings.TRIP_REOPEN_GRACE_MINUTES)
    return (
        db.query(Trip)
        .filter(
            Trip.household_code == household_code,
            Trip.store_id == store_id,
            Trip.started_at >= start_of_day(now),
            Trip.ended_at.isnot(None),
            Trip.ended_at >= grace_start,
        )
        .order_by(Trip.ended_at.desc())
        .first()
    )


def close_open_trips(db: Session, household_code: str, store_id: int, now: datetime) -> int:
    """
    Stage ended_at = now on every open trip for household + store. Caller commits.
    """
    closed = 0
    for trip in _open_trips(db, household_code, store_id).all():
        trip.ended_at = now
        closed += 1
    if closed:
        db.flush()
    return closed


def _commit_open_trip(db: Session, trip: Trip, household_code: str, store_id: int) -> Trip:
    """
    Commit a trip that is about to be open. If the open-trip unique index rejects
    it, another request won the race: return the trip that request opened.
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_open_trip(db, household_code, store_id)
        if existing is None:
            raise
        logger.warning(
            "Concurrent open trip detected for household=%s store=%s; using trip %s",
            household_code, store_id, existing.id,
        )
        return existing
    db.refresh(trip)
    return trip


# ---------- RESOLVE OR CREATE ----------

def resolve_or_create_trip(
    db: Session,
    household_code: str,
    store_id: int,
    store_name: str,
    now: Optional[datetime] = None,
) -> Trip:
    """
    Returns the current trip for household + store:

    1. today's open trip
    2. today's trip closed within the grace window, re-opened
    3. a new trip
    """
    now = now or utcnow()

    trip = find_open_trip_today(db, household_code, store_id, now)
    if trip:
        return trip

    # an open trip from an earlier day would block the open-trip index
    stale = close_open_trips(db, household_code, store_id, now)
    if stale:
        logger.info(
            "Closed %d stale open trip(s) for household=%s store=%s", stale, household_code, store_id
        )

    trip = find_reopenable_trip(db, household_code, store_id, now)
    if trip:
        trip.ended_at = None
        logger.info("Re-opened trip %s for household=%s store=%s", trip.id, household_code, store_name)
        return _commit_open_trip(db, trip, household_code, store_id)

    trip = Trip(
        household_code=household_code,
        store_id=store_id,
        store=store_name,
        started_at=now,
    )
    db.add(trip)
    trip = _commit_open_trip(db, trip, household_code, store_id)
    logger.info("Trip %s open for household=%s store=%s", trip.id, household_code, store_name)
    return trip


# ---------- EXPLICIT START ----------

def start_trip(
    db: Session, store_id: int, household_code: str, now: Optional[datetime] = None
) -> Trip:
    now = now or utcnow()

    store = get_store(db, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")

    try:
        close_open_trips(db, household_code, store_id, now)
        trip = Trip(
            household_code=household_code,
            store_id=store_id,
            store=store.name,
            started_at=now,
        )
        db.add(trip)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error starting trip for household=%s store=%s", household_code, store_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to start trip") from e

    db.refresh(trip)
    return trip


# ---------- EXPLICIT END ----------

def _remove_checked_trip_items(db: Session, trip_id: int, household_code: str) -> int:
    rows = (
        db.query(ShoppingListEvent.item_id)
        .filter(ShoppingListEvent.trip_id == trip_id, ShoppingListEvent.item_id.isnot(None))
        .distinct()
        .all()
    )
    item_ids = [row.item_id for row in rows]
    if not item_ids:
        return 0

    removed = (
        db.query(ListItem)
        .filter(
            ListItem.household_code == household_code,
            ListItem.checked.is_(True),
            ListItem.item_id.in_(item_ids),
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return removed


def end_trip(
    db: Session,
    trip_id: int,
    store_id: int,
    household_code: str,
    now: Optional[datetime] = None,
) -> int:
    """
    Closes the trip, then clears this trip's checked items from the list.
    Returns the number of list items removed.
    """
    now = now or utcnow()

    trip = (
        db.query(Trip)
        .filter(
            Trip.id == trip_id,
            Trip.household_code == household_code,
            Trip.store_id == store_id,
        )
        .first()
    )
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")

    trip.ended_at = now
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error ending trip %s", trip_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to end trip") from e

    try:
        removed = _remove_checked_trip_items(db, trip_id, household_code)
    except SQLAlchemyError:
        db.rollback()
        logger.error("Error cleaning up list for trip %s", trip_id, exc_info=True)
        return 0

    logger.info("Trip %s ended, %d checked item(s) removed from list", trip_id, removed)
    return removed


# ---------- DELETE ----------

def delete_trip(db: Session, trip_id: int) -> None:
    trip = get_trip(db, trip_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")

    try:
        db.query(ShoppingListEvent).filter(ShoppingListEvent.trip_id == trip_id).delete(
            synchronize_session=False
        )
        db.delete(trip)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error deleting trip %s", trip_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete trip") from e


# ---------- LIST ----------

def list_trips(db: Session, household_code: str) -> List[TripSummaryResponse]:
    rows = (
        db.query(
            Trip,
            func.count(ShoppingListEvent.id).label("item_count"),
            func.coalesce(func.sum(ShoppingListEvent.price * ShoppingListEvent.quantity), 0.0).label("total_spent"),
        )
        .outerjoin(ShoppingListEvent, ShoppingListEvent.trip_id == Trip.id)
        .filter(Trip.household_code == household_code)
        .group_by(Trip.id)
        .order_by(Trip.started_at.desc())
        .all()
    )

    return [
        TripSummaryResponse(
            id=trip.id,
            household_code=trip.household_code,
            store_id=trip.store_id,
            store=trip.store,
            started_at=trip.started_at,
            ended_at=trip.ended_at,
            item_count=int(item_count or 0),
            total_spent=round(float(total_spent or 0.0), 2),
        )
        for trip, item_count, total_spent in rows
    ]

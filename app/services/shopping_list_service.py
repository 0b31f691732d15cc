import logging
from datetime import datetime
from typing import Callable, List, Optional

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.price_history import PriceHistory
from app.models.shopping_list import ListItem, ShoppingListEvent
from app.schemas.shopping_list import CheckItemResponse
from app.services.price_service import current_price, record_implicit_confirmation
from app.services.store_service import UNKNOWN_STORE, get_or_create_item, resolve_store_name
from app.services.trip_service import resolve_or_create_trip

logger = logging.getLogger(__name__)


def get_list_item(db: Session, shopping_list_id: int) -> Optional[ListItem]:
    return db.query(ListItem).filter(ListItem.id == shopping_list_id).first()


def _best_effort(db: Session, step: str, degraded: List[str], fn: Callable, *args, **kwargs):
    """
    Runs a secondary step. A data-store failure is rolled back, logged and
    recorded in `degraded`; the caller continues.
    """
    try:
        return fn(*args, **kwargs)
    except SQLAlchemyError:
        db.rollback()
        logger.error("check-item step %r failed", step, exc_info=True)
        degraded.append(step)
        return None


def _log_check_event(
    db: Session,
    household_code: str,
    item_id: Optional[int],
    item_name: str,
    quantity: int,
    store_id: int,
    store_name: str,
    trip_id: int,
    price: Optional[float],
    now: datetime,
) -> ShoppingListEvent:
    event = ShoppingListEvent(
        household_code=household_code,
        item_id=item_id,
        item_name=item_name,
        quantity=quantity or 1,
        store_id=store_id,
        store=store_name,
        trip_id=trip_id,
        checked_at=now,
        price=price,
    )
    db.add(event)
    db.commit()
    return event


def count_unchecked_for_store(db: Session, household_code: str, store_id: int) -> int:
    """
    Unchecked list items that have ever been priced at this store.
    """
    priced_here = (
        select(PriceHistory.item_id)
        .where(
            PriceHistory.household_code == household_code,
            PriceHistory.store_id == store_id,
        )
        .distinct()
    )
    return (
        db.query(func.count(ListItem.id))
        .filter(
            ListItem.household_code == household_code,
            ListItem.checked.is_(False),
            ListItem.item_id.in_(priced_here),
        )
        .scalar()
    ) or 0


# ---------- CHECK-OFF ----------

def check_item(
    db: Session,
    shopping_list_id: int,
    store_id: Optional[int] = None,
    last_trip_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> CheckItemResponse:
    """
    Marks a list item checked, then (with a store) snapshots its price,
    resolves the trip, logs the event and re-confirms the known price.

    Only the lookup and the checked flag can fail the request. Everything
    after that is best-effort and reported through `degraded`.
    """
    now = now or utcnow()

    list_item = get_list_item(db, shopping_list_id)
    if not list_item:
        raise HTTPException(status_code=404, detail="Shopping list item not found")

    list_item.checked = True
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to check item %s", shopping_list_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update item") from e

    if store_id is None:
        return CheckItemResponse(message="Item checked (no store tracking)")

    household_code = list_item.household_code
    item_id = list_item.item_id
    item_name = list_item.item_name
    quantity = list_item.quantity

    degraded: List[str] = []

    store_name = _best_effort(db, "store_lookup", degraded, resolve_store_name, db, store_id) or UNKNOWN_STORE

    price = _best_effort(db, "price_lookup", degraded, current_price, db, household_code, item_id, store_id)

    trip = _best_effort(
        db, "trip", degraded, resolve_or_create_trip, db, household_code, store_id, store_name, now=now
    )
    if trip is None:
        return CheckItemResponse(degraded=degraded)
    trip_id = trip.id

    _best_effort(
        db, "event", degraded, _log_check_event,
        db, household_code, item_id, item_name, quantity, store_id, store_name, trip_id, price, now,
    )

    if price is not None and item_id is not None:
        _best_effort(
            db, "price_confirmation", degraded, record_implicit_confirmation,
            db, household_code, item_id, item_name, store_id, store_name, price, now=now,
        )

    # trips are only closed explicitly; this count is informational
    remaining = _best_effort(db, "diagnostics", degraded, count_unchecked_for_store, db, household_code, store_id)
    if remaining is not None:
        logger.info("Trip %s at %s: %d unchecked item(s) left for this store", trip_id, store_name, remaining)

    if degraded:
        logger.warning("Item %s checked with degraded steps: %s", shopping_list_id, ", ".join(degraded))

    return CheckItemResponse(
        trip_id=trip_id,
        trip_ended=False,
        trip_created=trip_id != last_trip_id,
        degraded=degraded,
    )


def uncheck_item(db: Session, shopping_list_id: int) -> ListItem:
    list_item = get_list_item(db, shopping_list_id)
    if not list_item:
        raise HTTPException(status_code=404, detail="Shopping list item not found")

    list_item.checked = False
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update item") from e
    db.refresh(list_item)
    return list_item


# ---------- LIST MAINTENANCE ----------

def list_items(db: Session, household_code: str) -> List[ListItem]:
    return (
        db.query(ListItem)
        .filter(ListItem.household_code == household_code)
        .order_by(ListItem.checked.asc(), ListItem.added_at.asc(), ListItem.id.asc())
        .all()
    )


def add_item(db: Session, household_code: str, item_name: str, quantity: int = 1) -> ListItem:
    item_name = item_name.strip()
    if not item_name:
        raise HTTPException(status_code=400, detail="item_name is required")

    try:
        item = get_or_create_item(db, household_code, item_name)

        existing = (
            db.query(ListItem)
            .filter(
                ListItem.household_code == household_code,
                ListItem.item_id == item.id,
                ListItem.checked.is_(False),
            )
            .first()
        )
        if existing:
            return existing

        list_item = ListItem(
            item_id=item.id,
            item_name=item.name,
            quantity=quantity,
            household_code=household_code,
            checked=False,
            added_at=utcnow(),
        )
        db.add(list_item)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to add %r to shopping list", item_name, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to add to shopping list") from e

    db.refresh(list_item)
    return list_item


def remove_item(db: Session, household_code: str, shopping_list_id: int) -> None:
    list_item = (
        db.query(ListItem)
        .filter(ListItem.id == shopping_list_id, ListItem.household_code == household_code)
        .first()
    )
    if not list_item:
        raise HTTPException(status_code=404, detail="Shopping list item not found")

    try:
        db.delete(list_item)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to remove item") from e

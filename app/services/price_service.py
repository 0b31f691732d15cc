import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Set, Tuple

from fastapi import HTTPException
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow, days_between
from app.core.config import settings
from app.models.price_history import PriceHistory
from app.models.price_submission import PriceSubmission
from app.models.shopping_list import ShoppingListEvent
from app.schemas.price_history import (
    BackfillResponse,
    LatestPriceResponse,
    PriceConfirmRequest,
    PriceConfirmResponse,
)
from app.services.store_service import find_item_by_name, get_or_create_item, resolve_store_name

logger = logging.getLogger(__name__)

PriceKey = Tuple[int, int, str, str]


def price_key(item_id: int, store_id: int, price: float, recorded: date) -> PriceKey:
    """
    Logical identity of a price observation: item, store, price to the cent, day.
    """
    return (int(item_id), int(store_id), f"{float(price):.2f}", recorded.isoformat())


# --------------------------
# READ
# --------------------------
def latest_price_record(
    db: Session, household_code: str, item_id: int, store_id: int
) -> Optional[PriceHistory]:
    return (
        db.query(PriceHistory)
        .filter(
            PriceHistory.household_code == household_code,
            PriceHistory.item_id == item_id,
            PriceHistory.store_id == store_id,
        )
        .order_by(
            PriceHistory.recorded_date.desc(),
            PriceHistory.created_at.desc(),
            PriceHistory.id.desc(),
        )
        .first()
    )


def current_price(db: Session, household_code: str, item_id: Optional[int], store_id: int) -> Optional[float]:
    if item_id is None:
        return None
    record = latest_price_record(db, household_code, item_id, store_id)
    return float(record.price) if record else None


def latest_price(
    db: Session,
    household_code: str,
    item_name: str,
    store_id: int,
    now: Optional[datetime] = None,
) -> LatestPriceResponse:
    now = now or utcnow()

    item = find_item_by_name(db, household_code, item_name)
    if not item:
        return LatestPriceResponse()

    record = latest_price_record(db, household_code, item.id, store_id)
    if not record:
        return LatestPriceResponse()

    return LatestPriceResponse(
        price=float(record.price),
        days_ago=days_between(record.recorded_date, now.date()),
    )


# --------------------------
# WRITE
# --------------------------
def record_price(
    db: Session,
    household_code: str,
    item_id: int,
    item_name: str,
    store_id: int,
    store_name: str,
    price: float,
    recorded_date: date,
    source: str,
    submitted_by: Optional[str] = None,
) -> PriceHistory:
    row = PriceHistory(
        household_code=household_code,
        item_id=item_id,
        item_name=item_name,
        store_id=store_id,
        store=store_name,
        price=price,
        recorded_date=recorded_date,
        source=source,
        submitted_by=submitted_by,
        created_at=utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def record_implicit_confirmation(
    db: Session,
    household_code: str,
    item_id: int,
    item_name: str,
    store_id: int,
    store_name: str,
    price: float,
    now: Optional[datetime] = None,
) -> PriceHistory:
    """
    A checked-off item whose price is already known counts as a fresh
    observation of that price today.
    """
    now = now or utcnow()
    return record_price(
        db,
        household_code=household_code,
        item_id=item_id,
        item_name=item_name,
        store_id=store_id,
        store_name=store_name,
        price=price,
        recorded_date=now.date(),
        source="confirmation",
    )


def confirm_price(
    db: Session,
    household_code: str,
    data: PriceConfirmRequest,
    now: Optional[datetime] = None,
) -> PriceConfirmResponse:
    now = now or utcnow()

    item_name = data.item_name.strip()
    if not item_name:
        raise HTTPException(status_code=400, detail="Missing required fields")

    submission = (
        db.query(PriceSubmission)
        .filter(
            PriceSubmission.id == data.submission_id,
            PriceSubmission.household_code == household_code,
        )
        .first()
    )
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found or access denied")

    logger.info("Confirming price for item %r (submission %s)", item_name, submission.id)
    submitted_by = submission.user_id

    # the item row is kept even if the price insert below fails
    try:
        item = get_or_create_item(db, household_code, item_name)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to create item %r", item_name, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create item") from e
    item_id = item.id

    store_name = resolve_store_name(db, data.store_id)

    try:
        row = record_price(
            db,
            household_code=household_code,
            item_id=item_id,
            item_name=item_name,
            store_id=data.store_id,
            store_name=store_name,
            price=data.price,
            recorded_date=now.date(),
            source="photo",
            submitted_by=submitted_by,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to save price for item %s", item_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save price") from e
    price_id = row.id

    try:
        submission.verified = True
        submission.verified_at = now
        if data.unit_size is not None:
            submission.unit_size = data.unit_size
        if data.is_sale is not None:
            submission.is_sale = data.is_sale
        if data.sale_expiration is not None:
            submission.sale_expiration = data.sale_expiration
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to mark submission %s as verified", data.submission_id, exc_info=True)

    return PriceConfirmResponse(price_id=price_id, item_id=item_id)


# --------------------------
# BACKFILL
# --------------------------
def _existing_price_keys(db: Session) -> Set[PriceKey]:
    rows = db.query(
        PriceHistory.item_id,
        PriceHistory.store_id,
        PriceHistory.price,
        PriceHistory.recorded_date,
    ).all()
    return {price_key(r.item_id, r.store_id, r.price, r.recorded_date) for r in rows}


def backfill_price_history(
    db: Session,
    batch_size: Optional[int] = None,
    now: Optional[datetime] = None,
) -> BackfillResponse:
    """
    Derives price_history rows from every priced check-off event, skipping
    (item, store, price-to-cent, day) combinations already recorded.
    Inserts in fixed-size batches and stops at the first failed batch.
    """
    now = now or utcnow()
    batch_size = batch_size or settings.BACKFILL_BATCH_SIZE

    try:
        events: List[ShoppingListEvent] = (
            db.query(ShoppingListEvent)
            .filter(
                ShoppingListEvent.price.isnot(None),
                ShoppingListEvent.store_id.isnot(None),
                ShoppingListEvent.item_id.isnot(None),
            )
            .order_by(ShoppingListEvent.checked_at.asc(), ShoppingListEvent.id.asc())
            .all()
        )
        existing = _existing_price_keys(db)
    except SQLAlchemyError as e:
        logger.error("Backfill could not read history", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info("Backfill: %d events with price information", len(events))

    candidates: Dict[PriceKey, dict] = {}
    for event in events:
        if event.checked_at is None:
            continue
        key = price_key(event.item_id, event.store_id, event.price, event.checked_at.date())
        if key in candidates:
            continue
        candidates[key] = {
            "household_code": event.household_code,
            "item_id": event.item_id,
            "item_name": event.item_name,
            "store_id": event.store_id,
            "store": event.store,
            "price": round(float(event.price), 2),
            "recorded_date": event.checked_at.date(),
            "source": "backfill",
            "created_at": now,
        }

    to_insert = [row for key, row in candidates.items() if key not in existing]
    logger.info(
        "Backfill: %d unique price points, %d new", len(candidates), len(to_insert)
    )

    for start in range(0, len(to_insert), batch_size):
        batch = to_insert[start:start + batch_size]
        try:
            db.execute(insert(PriceHistory), batch)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Backfill batch starting at %d failed", start, exc_info=True)
            raise HTTPException(status_code=500, detail=f"Insert error: {e}") from e

    return BackfillResponse(
        total_events_scanned=len(events),
        unique_price_points=len(candidates),
        already_existing=len(candidates) - len(to_insert),
        newly_inserted=len(to_insert),
    )

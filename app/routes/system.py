from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import func, text

from app.core.clock import utcnow, start_of_day
from app.database.connection import get_db
from app.schemas.system import HealthCheckResponse, SystemMetricsResponse
from app.models.trip import Trip
from app.models.shopping_list import ShoppingListEvent
from app.models.price_submission import PriceSubmission

router = APIRouter(tags=["System"])


def _uptime_seconds(request: Request, now: datetime) -> float:
    # start_time is only set once the startup hook ran
    start_time = getattr(request.app.state, "start_time", now)
    return (now - start_time).total_seconds()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Public liveness probe with a SELECT 1 against the database.
    """
    now = utcnow()

    db_ok = True
    extra = {}
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        db_ok = False
        extra["db_error"] = str(e)

    return HealthCheckResponse(
        status="ok" if db_ok else "degraded",
        now=now,
        uptime_seconds=_uptime_seconds(request, now),
        db_ok=db_ok,
        extra=extra or None,
    )


@router.get("/metrics", response_model=SystemMetricsResponse)
def system_metrics(request: Request, db: Session = Depends(get_db)):
    """
    Request counters from MetricsMiddleware plus trip and price activity
    counted from the database.
    """
    now = utcnow()

    counters = getattr(request.app.state, "metrics", None) or {}
    requests_count = int(counters.get("requests", 0))
    total_ms = float(counters.get("total_response_ms", 0.0))

    open_trips = (
        db.query(func.count(Trip.id))
        .filter(Trip.ended_at.is_(None))
        .scalar()
    )
    events_today = (
        db.query(func.count(ShoppingListEvent.id))
        .filter(ShoppingListEvent.checked_at >= start_of_day(now))
        .scalar()
    )
    pending_submissions = (
        db.query(func.count(PriceSubmission.id))
        .filter(PriceSubmission.verified.is_(False))
        .scalar()
    )

    return SystemMetricsResponse(
        uptime_seconds=_uptime_seconds(request, now),
        now=now,
        requests_count=requests_count,
        avg_response_ms=(total_ms / requests_count) if requests_count else None,
        open_trips=open_trips or 0,
        events_today=events_today or 0,
        pending_price_submissions=pending_submissions or 0,
    )

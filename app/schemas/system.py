from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class HealthCheckResponse(BaseModel):
    status: str
    now: datetime
    uptime_seconds: float
    db_ok: bool
    extra: Optional[Dict[str, Any]] = None


class SystemMetricsResponse(BaseModel):
    uptime_seconds: float
    now: datetime

    # middleware counters
    requests_count: int
    avg_response_ms: Optional[float] = None

    # DB metrics
    open_trips: int
    events_today: int
    pending_price_submissions: int

    extra: Optional[Dict[str, Any]] = None


class CleanupResult(BaseModel):
    success: bool = True
    trips_processed: int = 0
    items_cleaned: int = 0
    by_household: Dict[str, int] = {}
    message: Optional[str] = None

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional

class PriceHistoryResponse(BaseModel):
    id: int
    item_id: int
    item_name: str
    store_id: int
    store: Optional[str] = None
    price: float
    recorded_date: date
    source: str
    created_at: datetime

    class Config:
        from_attributes = True


class PriceConfirmRequest(BaseModel):
    submission_id: int
    item_name: str = Field(min_length=1)
    price: float = Field(gt=0)
    store_id: int
    unit_size: Optional[str] = None
    is_sale: Optional[bool] = None
    sale_expiration: Optional[date] = None


class PriceConfirmResponse(BaseModel):
    success: bool = True
    price_id: int
    item_id: int
    message: str = "Price added successfully!"


class LatestPriceRequest(BaseModel):
    item_name: str = Field(min_length=1)
    store_id: int


class LatestPriceResponse(BaseModel):
    price: Optional[float] = None
    days_ago: Optional[int] = None


class BackfillResponse(BaseModel):
    success: bool = True
    total_events_scanned: int
    unique_price_points: int
    already_existing: int
    newly_inserted: int

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TripStartRequest(BaseModel):
    store_id: int
    household_code: str = Field(min_length=1)


class TripEndRequest(BaseModel):
    trip_id: int
    store_id: int
    household_code: str = Field(min_length=1)


class TripDeleteRequest(BaseModel):
    trip_id: int


class TripResponse(BaseModel):
    id: int
    household_code: str
    store_id: int
    store: str
    started_at: datetime
    ended_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TripStartResponse(BaseModel):
    success: bool = True
    trip: TripResponse


class TripEndResponse(BaseModel):
    success: bool = True
    items_removed: int = 0


class TripDeleteResponse(BaseModel):
    success: bool = True


class TripSummaryResponse(TripResponse):
    item_count: int
    total_spent: float

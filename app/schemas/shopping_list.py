from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ---------- Check-off ----------

class CheckItemRequest(BaseModel):
    shopping_list_id: int
    store_id: Optional[int] = None
    last_trip_id: Optional[int] = None


class CheckItemResponse(BaseModel):
    success: bool = True
    trip_id: Optional[int] = None
    trip_ended: bool = False
    trip_created: bool = False
    message: Optional[str] = None
    # secondary steps that failed after the item was checked
    degraded: List[str] = []


class UncheckItemRequest(BaseModel):
    shopping_list_id: int


# ---------- List maintenance ----------

class AddItemRequest(BaseModel):
    item_name: str = Field(min_length=1)
    quantity: int = Field(default=1, gt=0)


class RemoveItemRequest(BaseModel):
    shopping_list_id: int


class ListItemResponse(BaseModel):
    id: int
    item_id: Optional[int] = None
    item_name: str
    quantity: int
    household_code: str
    checked: bool
    added_at: datetime

    class Config:
        from_attributes = True

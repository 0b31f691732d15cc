import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field


class ExternalReceiptItem(BaseModel):
    name: str
    price: float
    quantity: Optional[float] = None
    sku: Optional[str] = None


class ExternalReceiptImportRequest(BaseModel):
    source: Optional[str] = None
    store: Optional[str] = None
    date: Optional[dt.date] = None
    items: List[ExternalReceiptItem] = Field(default_factory=list)


class ExternalReceiptImportResponse(BaseModel):
    success: bool = True
    import_id: int
    item_count: int
    message: str

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.imported_receipt import ImportedReceipt
from app.schemas.receipt import ExternalReceiptImportRequest, ExternalReceiptImportResponse
from app.services.store_service import find_store_by_name

logger = logging.getLogger(__name__)

# extension sources that map straight to a store
SOURCE_STORE_NAMES = {
    "walmart": "Walmart",
    "costco": "Costco",
}


def external_store_name(source: Optional[str], store: Optional[str]) -> str:
    return SOURCE_STORE_NAMES.get((source or "").lower()) or store or "Unknown"


def build_ocr_data(data: ExternalReceiptImportRequest, store_name: str, now: datetime) -> dict:
    """
    Shapes an extension payload like a scanned receipt so both go through the
    same review step.
    """
    receipt_date = data.date or now.date()
    return {
        "store": store_name,
        "date": receipt_date.isoformat(),
        "time": "12:00",
        "items": [
            {
                "name": item.name,
                "normalized_name": item.name,
                "price": item.price,
                "quantity": item.quantity or 1,
                "unit": "each",
                "is_weighted": False,
                "sku": item.sku or "",
                "ai_match": "",
            }
            for item in data.items
        ],
        "should_add_trip": True,
        "source": data.source or "extension",
    }


def import_external_receipt(
    db: Session,
    household_code: str,
    data: ExternalReceiptImportRequest,
    now: Optional[datetime] = None,
) -> ExternalReceiptImportResponse:
    now = now or utcnow()

    if not data.items:
        raise HTTPException(status_code=400, detail="No items provided")

    store_name = external_store_name(data.source, data.store)
    store = find_store_by_name(db, store_name)

    receipt = ImportedReceipt(
        household_code=household_code,
        store_id=store.id if store else None,
        image_url=f"external:{data.source}",
        ocr_data=build_ocr_data(data, store_name, now),
        status="pending",
        created_at=now,
    )
    db.add(receipt)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to stage external receipt", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to stage receipt: {e}") from e
    db.refresh(receipt)

    logger.info("Staged receipt %s from %s with %d items", receipt.id, store_name, len(data.items))

    return ExternalReceiptImportResponse(
        import_id=receipt.id,
        item_count=len(data.items),
        message=f"Receipt staged with {len(data.items)} items for review.",
    )

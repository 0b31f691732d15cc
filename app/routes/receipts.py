from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.household import require_household
from app.schemas.receipt import ExternalReceiptImportRequest, ExternalReceiptImportResponse
from app.services.receipt_service import import_external_receipt

router = APIRouter(prefix="/api/receipts", tags=["Receipts"])


@router.post("/import-external", response_model=ExternalReceiptImportResponse)
def import_external_route(
    body: ExternalReceiptImportRequest,
    household_code: str = Depends(require_household),
    db: Session = Depends(get_db),
):
    return import_external_receipt(db, household_code, body)

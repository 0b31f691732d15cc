from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.schemas.price_history import BackfillResponse
from app.services.price_service import backfill_price_history

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/backfill-price-history", response_model=BackfillResponse)
def backfill_price_history_route(db: Session = Depends(get_db)):
    """
    Derives missing price history rows from the check-off event log.
    """
    return backfill_price_history(db)

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.household import require_household
from app.schemas.price_history import (
    LatestPriceRequest,
    LatestPriceResponse,
    PriceConfirmRequest,
    PriceConfirmResponse,
)
from app.services.price_service import confirm_price, latest_price

router = APIRouter(prefix="/api/prices", tags=["Price History"])


@router.post("/confirm", response_model=PriceConfirmResponse)
def confirm_price_route(
    body: PriceConfirmRequest,
    household_code: str = Depends(require_household),
    db: Session = Depends(get_db),
):
    """
    Turns a pending photo submission into a price_history row.
    """
    return confirm_price(db, household_code, body)


@router.post("/latest", response_model=LatestPriceResponse)
def latest_price_route(
    body: LatestPriceRequest,
    household_code: str = Depends(require_household),
    db: Session = Depends(get_db),
):
    return latest_price(db, household_code, body.item_name, body.store_id)

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.household import require_household
from app.schemas.shopping_list import (
    AddItemRequest,
    CheckItemRequest,
    CheckItemResponse,
    ListItemResponse,
    RemoveItemRequest,
    UncheckItemRequest,
)
from app.services.shopping_list_service import (
    add_item,
    check_item,
    list_items,
    remove_item,
    uncheck_item,
)

router = APIRouter(prefix="/api/shopping-list", tags=["Shopping List"])


# ---------- LIST ----------

@router.get("", response_model=List[ListItemResponse])
def list_route(
    household_code: str = Depends(require_household),
    db: Session = Depends(get_db),
):
    return list_items(db, household_code)


# ---------- CHECK OFF ----------

@router.post("/check-item", response_model=CheckItemResponse)
def check_item_route(body: CheckItemRequest, db: Session = Depends(get_db)):
    """
    Marks the item checked. With a store_id the check-off is also recorded
    against the current trip with a price snapshot.
    """
    return check_item(
        db,
        shopping_list_id=body.shopping_list_id,
        store_id=body.store_id,
        last_trip_id=body.last_trip_id,
    )


@router.post("/uncheck-item", response_model=ListItemResponse)
def uncheck_item_route(body: UncheckItemRequest, db: Session = Depends(get_db)):
    return uncheck_item(db, body.shopping_list_id)


# ---------- ADD / REMOVE ----------

@router.post("/add-item", response_model=ListItemResponse)
def add_item_route(
    body: AddItemRequest,
    household_code: str = Depends(require_household),
    db: Session = Depends(get_db),
):
    return add_item(db, household_code, body.item_name, body.quantity)


@router.post("/remove-item")
def remove_item_route(
    body: RemoveItemRequest,
    household_code: str = Depends(require_household),
    db: Session = Depends(get_db),
):
    remove_item(db, household_code, body.shopping_list_id)
    return {"success": True}

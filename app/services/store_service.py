from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.store import Store, Item

UNKNOWN_STORE = "Unknown Store"


# --------------------------
# STORES
# --------------------------
def get_store(db: Session, store_id: int) -> Optional[Store]:
    return db.query(Store).filter(Store.id == store_id).first()


def resolve_store_name(db: Session, store_id: int, default: str = UNKNOWN_STORE) -> str:
    store = get_store(db, store_id)
    return store.name if store else default


def find_store_by_name(db: Session, name: str) -> Optional[Store]:
    """
    Case-insensitive substring match, first store by id wins.
    """
    pattern = f"%{name.lower()}%"
    return (
        db.query(Store)
        .filter(func.lower(Store.name).like(pattern))
        .order_by(Store.id.asc())
        .first()
    )


# --------------------------
# ITEMS
# --------------------------
def find_item_by_name(db: Session, household_code: str, name: str) -> Optional[Item]:
    return (
        db.query(Item)
        .filter(
            Item.household_code == household_code,
            func.lower(Item.name) == name.strip().lower(),
        )
        .order_by(Item.id.asc())
        .first()
    )


def get_or_create_item(db: Session, household_code: str, name: str) -> Item:
    """
    Read-then-write: two concurrent callers can both create the item.
    A later call always resolves to the oldest row.
    """
    item = find_item_by_name(db, household_code, name)
    if item:
        return item

    item = Item(household_code=household_code, name=name.strip())
    db.add(item)
    db.commit()
    db.refresh(item)
    return item

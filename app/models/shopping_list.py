from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.database.connection import Base


class ListItem(Base):
    __tablename__ = "shopping_list"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=True, index=True)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    household_code = Column(String, nullable=False, index=True)
    checked = Column(Boolean, nullable=False, default=False, index=True)
    added_at = Column(DateTime, default=utcnow)


class ShoppingListEvent(Base):
    """
    Append-only log entry written once per check-off.
    """
    __tablename__ = "shopping_list_events"

    id = Column(Integer, primary_key=True, index=True)
    household_code = Column(String, nullable=False, index=True)
    item_id = Column(Integer, nullable=True, index=True)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    store_id = Column(Integer, nullable=True, index=True)
    store = Column(String, nullable=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True, index=True)
    checked_at = Column(DateTime, default=utcnow, index=True)
    price = Column(Float, nullable=True)  # snapshot at check time

    trip = relationship("Trip", back_populates="events")

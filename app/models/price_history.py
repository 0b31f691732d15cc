from sqlalchemy import Column, Integer, String, Float, Date, DateTime
from app.core.clock import utcnow
from app.database.connection import Base

class PriceHistory(Base):
    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True, index=True)
    household_code = Column(String, nullable=False, index=True)
    item_id = Column(Integer, nullable=False, index=True)
    item_name = Column(String, nullable=False)
    store_id = Column(Integer, nullable=False, index=True)
    store = Column(String, nullable=True)
    price = Column(Float, nullable=False)
    recorded_date = Column(Date, nullable=False, index=True)
    source = Column(String, nullable=False, default="manual")  # manual / photo / confirmation / backfill / receipt
    submitted_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

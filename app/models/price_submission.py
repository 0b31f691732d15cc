from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime

from app.core.clock import utcnow
from app.database.connection import Base


class PriceSubmission(Base):
    __tablename__ = "price_submissions"

    id = Column(Integer, primary_key=True, index=True)
    household_code = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    item_name = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    store_id = Column(Integer, nullable=True)
    unit_size = Column(String, nullable=True)
    is_sale = Column(Boolean, default=False)
    sale_expiration = Column(Date, nullable=True)
    verified = Column(Boolean, nullable=False, default=False, index=True)
    verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

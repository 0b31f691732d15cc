from sqlalchemy import Column, Integer, String, DateTime, JSON

from app.core.clock import utcnow
from app.database.connection import Base


class ImportedReceipt(Base):
    __tablename__ = "imported_receipts"

    id = Column(Integer, primary_key=True, index=True)
    household_code = Column(String, nullable=False, index=True)
    store_id = Column(Integer, nullable=True)
    image_url = Column(String, nullable=True)  # "external:<source>" for extension imports
    ocr_data = Column(JSON, default={})
    status = Column(String, default="pending", index=True)  # pending / imported / discarded
    created_at = Column(DateTime, default=utcnow)

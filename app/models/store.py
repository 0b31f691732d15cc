from sqlalchemy import Column, Integer, String, DateTime
from app.core.clock import utcnow
from app.database.connection import Base

class Store(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    household_code = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)  # matched case-insensitively
    created_at = Column(DateTime, default=utcnow)

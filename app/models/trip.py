from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.database.connection import Base


class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (
        # one open trip per household + store
        Index(
            "uq_trips_open_household_store",
            "household_code",
            "store_id",
            unique=True,
            sqlite_where=text("ended_at IS NULL"),
            postgresql_where=text("ended_at IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    household_code = Column(String, nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    store = Column(String, nullable=False)  # denormalized store name
    started_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    ended_at = Column(DateTime, nullable=True, index=True)

    events = relationship("ShoppingListEvent", back_populates="trip")

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

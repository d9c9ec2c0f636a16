from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from reservations.db import Base

# cost type -> rate column used to price it
RATE_FIELDS = {
    "flat": "flat_rate",
    "hourly": "hourly_rate",
    "per_attendee": "attendee_rate",
}


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    description = Column(String, nullable=True)
    capacity = Column(Integer, nullable=False)
    # Rates in minor currency units (cents)
    flat_rate = Column(Integer, nullable=True)
    hourly_rate = Column(Integer, nullable=True)
    attendee_rate = Column(Integer, nullable=True)
    # [{"id": str, "name": str, "cost": int}, ...]
    facilities = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    location = relationship("Location", back_populates="rooms")

    def rate_for(self, cost_type):
        """Rate backing ``cost_type``, or None if the room does not offer it."""
        field = RATE_FIELDS.get(cost_type)
        return getattr(self, field) if field else None

    @property
    def cost_types(self):
        return [cost_type for cost_type in RATE_FIELDS if self.rate_for(cost_type) is not None]

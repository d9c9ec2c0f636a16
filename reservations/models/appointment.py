from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from reservations.db import Base

STATUSES = ("pending", "approved", "rejected", "cancelled")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (CheckConstraint("end_time > start_time", name="check_time_range"),)

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(Integer, unique=True, nullable=False)
    title = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False, default="pending", index=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    customer_organization = Column(String, nullable=True)
    attendees_count = Column(Integer, nullable=False, default=1)
    purpose = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    agreed_cost = Column(Integer, nullable=False, default=0)
    cost_breakdown = Column(JSON, nullable=False, default=dict)
    rejection_reason = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    rooms = relationship(
        "RoomBooking",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="RoomBooking.id",
    )

    @property
    def is_custom_priced(self):
        return bool((self.cost_breakdown or {}).get("is_custom"))


class RoomBooking(Base):
    """One room's share of an appointment.

    ``room_name`` is copied from the room when the booking is written so the
    record stays readable after the room is renamed or deleted.
    """

    __tablename__ = "room_bookings"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True, index=True)
    room_name = Column(String, nullable=False)
    cost_type = Column(String, nullable=False)
    requested_facilities = Column(JSON, nullable=False, default=list)
    cost = Column(Integer, nullable=False, default=0)

    appointment = relationship("Appointment", back_populates="rooms")

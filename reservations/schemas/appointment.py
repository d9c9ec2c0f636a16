from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from reservations.utils.validation_helpers import normalize_datetime

CostType = Literal["flat", "hourly", "per_attendee"]


class RoomSelection(BaseModel):
    room_id: int
    cost_type: CostType
    requested_facilities: List[str] = []


class AppointmentCreate(BaseModel):
    """Booking request.

    Required fields are optional here so the booking service can report each
    missing one as a per-field error.
    """

    title: Optional[str] = None
    rooms: List[RoomSelection] = []
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_organization: Optional[str] = None
    attendees_count: int = 1
    purpose: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value):
        return normalize_datetime(value)


class AppointmentUpdate(BaseModel):
    title: Optional[str] = None
    rooms: Optional[List[RoomSelection]] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_organization: Optional[str] = None
    attendees_count: Optional[int] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value):
        return normalize_datetime(value)


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class CustomPricingUpdate(BaseModel):
    """Turn the manual price override on (with a price) or off."""

    is_custom: bool
    agreed_cost: Optional[int] = Field(default=None, ge=0)
    agreed_amount: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_price(self):
        if self.is_custom and self.agreed_cost is None and self.agreed_amount is None:
            raise ValueError("agreed_cost or agreed_amount is required for custom pricing")
        return self


class QuoteRequest(BaseModel):
    rooms: List[RoomSelection] = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    attendees_count: int = Field(default=1, ge=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value):
        return normalize_datetime(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_time >= self.end_time:
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityRequest(BaseModel):
    room_ids: List[int] = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    exclude_appointment_id: Optional[int] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value):
        return normalize_datetime(value)


class BusyInterval(BaseModel):
    appointment_id: int
    start_time: datetime
    end_time: datetime
    status: str


class RoomAvailability(BaseModel):
    room_id: int
    available: bool
    conflicts: List[BusyInterval] = []


class RoomBookingResponse(BaseModel):
    room_id: Optional[int]
    room_name: str
    cost_type: str
    requested_facilities: List[str]
    cost: int

    model_config = ConfigDict(from_attributes=True)


class AppointmentResponse(BaseModel):
    id: int
    order_number: int
    title: str
    status: str
    start_time: datetime
    end_time: datetime
    rooms: List[RoomBookingResponse]
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    customer_organization: Optional[str]
    attendees_count: int
    purpose: Optional[str]
    notes: Optional[str]
    agreed_cost: int
    cost_breakdown: Dict[str, Any]
    rejection_reason: Optional[str]
    created_by: Optional[int]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PublicAppointmentResponse(BaseModel):
    """Calendar entry without customer details."""

    id: int
    title: str
    status: str
    start_time: datetime
    end_time: datetime
    rooms: List[RoomBookingResponse]

    model_config = ConfigDict(from_attributes=True)

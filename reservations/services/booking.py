"""
Booking creation.

A booking request is validated in full, then availability is re-checked and
the appointment written inside one transaction while holding
``booking_write_lock``. Either every selected room is booked or none is.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from reservations.db import atomic
from reservations.models.appointment import Appointment, RoomBooking
from reservations.models.room import Room
from reservations.schemas.appointment import AppointmentCreate, RoomSelection
from reservations.services import audit
from reservations.utils.access import ANY, ensure_permitted
from reservations.utils.availability import find_conflicts, load_blocking_appointments
from reservations.utils.errors import ConflictError, NotFoundError, ValidationError
from reservations.utils.notifications import BaseSender, notify
from reservations.utils.pricing import calculate_booking_cost
from reservations.utils.validation_helpers import check_email, check_time_window

logger = logging.getLogger(__name__)

# Serializes check-then-write of bookings within this process.
booking_write_lock = threading.Lock()

RoomChoice = Tuple[Room, RoomSelection]


def unique(names) -> List[str]:
    return list(dict.fromkeys(names or []))


def check_required(errors: Dict[str, str], field: str, value: Optional[str], label: str) -> None:
    if value is None or not value.strip():
        errors[field] = f"{label} is required"


def validate_request(booking: AppointmentCreate) -> None:
    """Raise ``ValidationError`` listing every problem with the request shape."""
    errors = {}
    check_required(errors, "title", booking.title, "Title")
    check_required(errors, "customer_name", booking.customer_name, "Customer name")
    email_error = check_email(booking.customer_email)
    if email_error:
        errors["customer_email"] = email_error
    if booking.attendees_count < 1:
        errors["attendees_count"] = "At least one attendee is required"
    if not booking.rooms:
        errors["rooms"] = "Select at least one room"
    else:
        room_ids = [selection.room_id for selection in booking.rooms]
        if len(set(room_ids)) != len(room_ids):
            errors["rooms"] = "A room can only be selected once"
    errors.update(check_time_window(booking.start_time, booking.end_time))
    if errors:
        logger.error(f"Invalid booking request: {errors}")
        raise ValidationError(errors)


def load_rooms(db: Session, room_ids: List[int]) -> Dict[int, Room]:
    rooms = {room.id: room for room in db.query(Room).filter(Room.id.in_(room_ids)).all()}
    for room_id in room_ids:
        if room_id not in rooms:
            logger.error(f"Room not found: {room_id}")
            raise NotFoundError("Room", room_id)
    return rooms


def rate_error(room: Room, selection: RoomSelection) -> Optional[str]:
    if room.rate_for(selection.cost_type) is None:
        return f"Room {room.name} has no rate for {selection.cost_type} pricing"
    return None


def ensure_rates(choices: List[RoomChoice]) -> None:
    """Raise ``ValidationError`` if a room no longer offers the chosen pricing."""
    errors = {}
    for index, (room, selection) in enumerate(choices):
        message = rate_error(room, selection)
        if message:
            errors[f"rooms[{index}].cost_type"] = message
    if errors:
        logger.error(f"Rejected room pricing: {errors}")
        raise ValidationError(errors)


def resolve_rooms(
    db: Session, selections: List[RoomSelection], attendees_count: int
) -> List[RoomChoice]:
    """Pair each selection with its room and check the room can take it."""
    rooms = load_rooms(db, [selection.room_id for selection in selections])
    errors = {}
    choices = []
    for index, selection in enumerate(selections):
        room = rooms[selection.room_id]
        field = f"rooms[{index}]"
        if not room.active:
            errors[field] = f"Room {room.name} is not available for booking"
        elif rate_error(room, selection):
            errors[f"{field}.cost_type"] = rate_error(room, selection)
        elif attendees_count > room.capacity:
            errors[f"{field}.attendees_count"] = (
                f"Room capacity insufficient: {room.capacity} < {attendees_count}"
            )
        choices.append((room, selection))
    if errors:
        logger.error(f"Rejected room selection: {errors}")
        raise ValidationError(errors)
    return choices


def ensure_available(
    db: Session,
    choices: List[RoomChoice],
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> None:
    """Raise ``ConflictError`` naming every room that is taken."""
    room_ids = [room.id for room, _ in choices]
    existing = load_blocking_appointments(db, room_ids, start, end)
    conflicts = []
    for room, _ in choices:
        for appointment in find_conflicts(room.id, start, end, existing, exclude_appointment_id):
            conflicts.append(
                {
                    "room_id": room.id,
                    "room_name": room.name,
                    "appointment_id": appointment.id,
                    "start_time": appointment.start_time.isoformat(),
                    "end_time": appointment.end_time.isoformat(),
                }
            )
    if conflicts:
        logger.error(f"Overlapping booking found for rooms {room_ids}, time: {start} to {end}")
        raise ConflictError(conflicts)


def price(choices: List[RoomChoice], start: datetime, end: datetime, attendees_count: int) -> dict:
    selections = [
        (room, selection.cost_type, unique(selection.requested_facilities))
        for room, selection in choices
    ]
    return calculate_booking_cost(selections, start, end, attendees_count)


def build_room_bookings(choices: List[RoomChoice], breakdown: dict) -> List[RoomBooking]:
    return [
        RoomBooking(
            room_id=room.id,
            room_name=room.name,
            cost_type=selection.cost_type,
            requested_facilities=unique(selection.requested_facilities),
            cost=entry["total"],
        )
        for (room, selection), entry in zip(choices, breakdown["rooms"])
    ]


def next_order_number(db: Session) -> int:
    current = db.query(func.max(Appointment.order_number)).scalar()
    return (current or 0) + 1


def create_booking(
    db: Session,
    booking: AppointmentCreate,
    actor: Optional[dict] = None,
    sender: Optional[BaseSender] = None,
) -> Appointment:
    """Validate, re-check availability, price and persist a pending appointment."""
    ensure_permitted(actor, ANY)
    validate_request(booking)
    choices = resolve_rooms(db, booking.rooms, booking.attendees_count)

    with booking_write_lock:
        with atomic(db):
            ensure_available(db, choices, booking.start_time, booking.end_time)
            breakdown = price(choices, booking.start_time, booking.end_time, booking.attendees_count)
            appointment = Appointment(
                order_number=next_order_number(db),
                title=booking.title.strip(),
                start_time=booking.start_time,
                end_time=booking.end_time,
                status="pending",
                customer_name=booking.customer_name.strip(),
                customer_email=booking.customer_email.strip(),
                customer_phone=booking.customer_phone,
                customer_organization=booking.customer_organization,
                attendees_count=booking.attendees_count,
                purpose=booking.purpose,
                notes=booking.notes,
                agreed_cost=breakdown["total"],
                cost_breakdown=breakdown,
                created_by=actor["id"] if actor else None,
            )
            appointment.rooms = build_room_bookings(choices, breakdown)
            db.add(appointment)
            db.flush()
            audit.record(db, appointment.id, actor, "create", None, audit.snapshot(appointment))

    db.refresh(appointment)
    logger.debug(
        f"Created appointment {appointment.id} (order {appointment.order_number}), "
        f"rooms: {[room.id for room, _ in choices]}, cost: {appointment.agreed_cost}"
    )
    notify(db, sender, appointment, "created")
    return appointment

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from reservations.config import settings
from reservations.db import get_db
from reservations.models.appointment import Appointment, RoomBooking
from reservations.models.location import Location
from reservations.models.room import Room
from reservations.schemas.appointment import (
    AvailabilityRequest,
    PublicAppointmentResponse,
    QuoteRequest,
    RoomAvailability,
)
from reservations.schemas.location import LocationResponse
from reservations.schemas.room import RoomResponse
from reservations.services.booking import load_rooms, price, resolve_rooms
from reservations.utils.availability import (
    BLOCKING_STATUSES,
    available_slots,
    find_conflicts,
    load_blocking_appointments,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/public",
    tags=["public"],
)


def get_active_room(db: Session, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id, Room.active.is_(True)).first()
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


def room_calendar(db: Session, room_id: int, start: datetime, end: datetime) -> List[Appointment]:
    return (
        db.query(Appointment)
        .join(RoomBooking, RoomBooking.appointment_id == Appointment.id)
        .filter(
            RoomBooking.room_id == room_id,
            Appointment.status.in_(BLOCKING_STATUSES),
            Appointment.start_time < end,
            Appointment.end_time > start,
        )
        .order_by(Appointment.start_time)
        .all()
    )


@router.get("/locations", response_model=List[LocationResponse])
def get_public_locations(db: Session = Depends(get_db)):
    return db.query(Location).order_by(Location.id).all()


@router.get("/rooms", response_model=List[RoomResponse])
def get_public_rooms(location_id: Optional[int] = None, db: Session = Depends(get_db)):
    query = db.query(Room).filter(Room.active.is_(True))
    if location_id is not None:
        query = query.filter(Room.location_id == location_id)
    return query.order_by(Room.id).all()


@router.get("/rooms/{room_id}/appointments", response_model=List[PublicAppointmentResponse])
def get_public_room_appointments(
    room_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """
    Calendar of a room: pending and approved appointments without customer
    details. Defaults to the next 30 days.
    """
    get_active_room(db, room_id)
    start_date = start_date or date.today()
    end_date = end_date or start_date + timedelta(days=30)
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")
    start = datetime.combine(start_date, datetime.min.time())
    end = datetime.combine(end_date + timedelta(days=1), datetime.min.time())
    return room_calendar(db, room_id, start, end)


@router.get("/rooms/{room_id}/available_slots", response_model=List[Dict[str, datetime]])
def get_available_slots(room_id: int, date: date, duration: int = 60, db: Session = Depends(get_db)):
    """
    List free slots of ``duration`` minutes for a room on a date, within
    working hours.
    """
    logger.debug(f"Fetching available slots for room_id: {room_id}, date: {date}, duration: {duration} minutes")
    if duration <= 0:
        logger.error(f"Invalid duration: {duration}, must be positive")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duration must be positive")
    get_active_room(db, room_id)
    day = datetime.combine(date, datetime.min.time())
    appointments = room_calendar(db, room_id, day, day + timedelta(days=1))
    slots = available_slots(
        date,
        appointments,
        duration,
        day_start_hour=settings.DAY_START_HOUR,
        day_end_hour=settings.DAY_END_HOUR,
    )
    logger.debug(f"Found {len(slots)} available slots for room_id: {room_id}")
    return slots


@router.post("/quote")
def quote(request: QuoteRequest, db: Session = Depends(get_db)):
    """
    Price a booking without saving anything.
    Rooms are checked the same way a booking request checks them.
    """
    choices = resolve_rooms(db, request.rooms, request.attendees_count)
    return price(choices, request.start_time, request.end_time, request.attendees_count)


@router.post("/availability", response_model=List[RoomAvailability])
def check_availability(request: AvailabilityRequest, db: Session = Depends(get_db)):
    """
    Check whether rooms are free for a window without booking them.
    """
    if request.start_time >= request.end_time:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_time must be after start_time")
    load_rooms(db, request.room_ids)
    existing = load_blocking_appointments(db, request.room_ids, request.start_time, request.end_time)
    result = []
    for room_id in request.room_ids:
        conflicts = find_conflicts(
            room_id, request.start_time, request.end_time, existing, request.exclude_appointment_id
        )
        result.append(
            {
                "room_id": room_id,
                "available": not conflicts,
                "conflicts": [
                    {
                        "appointment_id": appointment.id,
                        "start_time": appointment.start_time,
                        "end_time": appointment.end_time,
                        "status": appointment.status,
                    }
                    for appointment in conflicts
                ],
            }
        )
    return result

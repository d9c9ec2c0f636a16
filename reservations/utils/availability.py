"""Room availability.

Intervals are half-open: a booking ending at 15:00 does not conflict with one
starting at 15:00. Rejected and cancelled appointments never block a room.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from reservations.models.appointment import Appointment, RoomBooking

BLOCKING_STATUSES = ("pending", "approved")


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    return start1 < end2 and start2 < end1


def occupies_room(appointment, room_id: int) -> bool:
    return any(booking.room_id == room_id for booking in appointment.rooms)


def find_conflicts(
    room_id: int,
    start: Optional[datetime],
    end: Optional[datetime],
    existing_appointments: Iterable,
    exclude_appointment_id: Optional[int] = None,
) -> list:
    """Return the blocking appointments that overlap ``[start, end)`` in the room."""
    if start is None or end is None:
        return []
    conflicts = []
    for appointment in existing_appointments:
        if appointment.status not in BLOCKING_STATUSES:
            continue
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if not occupies_room(appointment, room_id):
            continue
        if intervals_overlap(start, end, appointment.start_time, appointment.end_time):
            conflicts.append(appointment)
    return conflicts


def is_available(
    room_id: int,
    start: Optional[datetime],
    end: Optional[datetime],
    existing_appointments: Iterable,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    """
    True when nothing blocks the room for the interval.

    Missing times cannot be evaluated and count as available; callers that
    persist bookings must reject them before getting here.
    """
    return not find_conflicts(room_id, start, end, existing_appointments, exclude_appointment_id)


def load_blocking_appointments(
    db: Session, room_ids: List[int], start: datetime, end: datetime
) -> List[Appointment]:
    """Pending/approved appointments holding any of the rooms during the interval."""
    return (
        db.query(Appointment)
        .join(RoomBooking, RoomBooking.appointment_id == Appointment.id)
        .filter(
            RoomBooking.room_id.in_(room_ids),
            Appointment.status.in_(BLOCKING_STATUSES),
            Appointment.start_time < end,
            Appointment.end_time > start,
        )
        .distinct()
        .order_by(Appointment.start_time)
        .all()
    )


def available_slots(
    day: date,
    appointments: Iterable,
    duration: int = 60,
    day_start_hour: int = 8,
    day_end_hour: int = 18,
) -> List[dict]:
    """
    Split the working hours of ``day`` into free slots of ``duration`` minutes.

    ``appointments`` are the room's appointments; non-blocking ones are skipped.
    """
    if duration <= 0:
        raise ValueError("Duration must be positive")

    day_start = datetime.combine(day, datetime.min.time()) + timedelta(hours=day_start_hour)
    day_end = datetime.combine(day, datetime.min.time()) + timedelta(hours=day_end_hour)
    blocking = sorted(
        (a for a in appointments if a.status in BLOCKING_STATUSES),
        key=lambda a: a.start_time,
    )

    slots = []
    current_time = day_start
    duration_delta = timedelta(minutes=duration)

    for appointment in blocking:
        if appointment.end_time <= day_start or appointment.start_time >= day_end:
            continue
        while current_time + duration_delta <= appointment.start_time:
            slot_end = current_time + duration_delta
            slots.append({"start_time": current_time, "end_time": slot_end})
            current_time = slot_end
        current_time = max(current_time, appointment.end_time)

    while current_time + duration_delta <= day_end:
        slot_end = current_time + duration_delta
        slots.append({"start_time": current_time, "end_time": slot_end})
        current_time = slot_end

    return slots

"""
Booking cost calculation.

All amounts are integers in minor currency units (cents). The only place a
decimal amount is turned into minor units is ``to_minor_units``, which rounds
half-up exactly once.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple

from reservations.models.room import RATE_FIELDS

ONE_HOUR = timedelta(hours=1)


def to_minor_units(amount, factor: int = 100) -> int:
    """Convert a major-unit amount (e.g. "12.345" euros) to minor units."""
    value = Decimal(str(amount)) * factor
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def billable_hours(start: datetime, end: datetime) -> int:
    """Duration in whole hours, rounded up, never less than one."""
    hours, remainder = divmod(end - start, ONE_HOUR)
    if remainder:
        hours += 1
    return max(hours, 1)


def _facilities_of(room) -> List[dict]:
    return list(room.facilities or [])


def calculate_room_cost(
    room,
    cost_type: str,
    start: datetime,
    end: datetime,
    attendees_count: int,
    requested_facilities: Optional[Iterable[str]] = None,
) -> dict:
    """
    Price one room for one booking window.

    Facilities are flat add-ons charged once each. Names the room does not
    (or no longer) offer are ignored.
    """
    if cost_type not in RATE_FIELDS:
        raise ValueError(f"Unknown cost type: {cost_type}")

    hours = billable_hours(start, end)
    rate = getattr(room, RATE_FIELDS[cost_type]) or 0
    if cost_type == "flat":
        base = rate
    elif cost_type == "hourly":
        base = rate * hours
    else:
        base = rate * attendees_count

    requested = set(requested_facilities or [])
    facilities = [
        {"name": facility["name"], "cost": int(facility["cost"])}
        for facility in _facilities_of(room)
        if facility["name"] in requested
    ]
    total = base + sum(item["cost"] for item in facilities)
    return {"base": base, "total": total, "hours": hours, "facilities": facilities}


def calculate_booking_cost(
    selections: List[Tuple[object, str, Iterable[str]]],
    start: datetime,
    end: datetime,
    attendees_count: int,
) -> dict:
    """
    Price a (possibly multi-room) booking.

    ``selections`` holds ``(room, cost_type, requested_facilities)`` per room.
    Each room is priced on its own and the results are summed. All rooms of
    one appointment share the same window, so ``hours`` is that window's
    billable hours rather than a sum.
    """
    rooms = []
    facilities = []
    for room, cost_type, requested in selections:
        cost = calculate_room_cost(room, cost_type, start, end, attendees_count, requested)
        rooms.append(
            {
                "room_id": room.id,
                "room_name": room.name,
                "cost_type": cost_type,
                **cost,
            }
        )
        facilities.extend(
            {"room_id": room.id, "room_name": room.name, **item} for item in cost["facilities"]
        )

    return {
        "base": sum(room["base"] for room in rooms),
        "total": sum(room["total"] for room in rooms),
        "hours": billable_hours(start, end),
        "attendees": attendees_count,
        "facilities": facilities,
        "rooms": rooms,
        "is_custom": False,
    }

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from reservations.utils.availability import (
    available_slots,
    find_conflicts,
    intervals_overlap,
    is_available,
)

DAY = date(2030, 5, 6)


def t(hour, minute=0):
    return datetime(2030, 5, 6, hour, minute)


def appointment(id, room_ids, start, end, status="approved"):
    rooms = [SimpleNamespace(room_id=room_id) for room_id in room_ids]
    return SimpleNamespace(id=id, rooms=rooms, start_time=start, end_time=end, status=status)


def test_touching_intervals_do_not_overlap():
    assert not intervals_overlap(t(14), t(15), t(15), t(16))
    assert not intervals_overlap(t(15), t(16), t(14), t(15))


def test_partial_overlap_conflicts():
    assert intervals_overlap(t(14), t(15), t(14, 30), t(15, 30))
    assert intervals_overlap(t(14), t(17), t(15), t(16))


def test_room_available_next_to_existing_booking():
    existing = [appointment(1, [7], t(14), t(15))]
    assert is_available(7, t(13), t(14), existing)
    assert is_available(7, t(15), t(16), existing)
    assert not is_available(7, t(14, 30), t(15, 30), existing)


@pytest.mark.parametrize("status", ["rejected", "cancelled"])
def test_rejected_and_cancelled_do_not_block(status):
    existing = [appointment(1, [7], t(14), t(15), status=status)]
    assert is_available(7, t(14), t(15), existing)


def test_pending_blocks():
    existing = [appointment(1, [7], t(14), t(15), status="pending")]
    assert not is_available(7, t(14), t(15), existing)


def test_other_rooms_are_ignored():
    existing = [appointment(1, [8, 9], t(14), t(15))]
    assert is_available(7, t(14), t(15), existing)
    assert not is_available(9, t(14), t(15), existing)


def test_missing_times_count_as_available():
    existing = [appointment(1, [7], t(14), t(15))]
    assert is_available(7, None, t(15), existing)
    assert is_available(7, t(14), None, existing)


def test_excluded_appointment_does_not_conflict_with_itself():
    existing = [appointment(1, [7], t(14), t(15))]
    assert is_available(7, t(14), t(16), existing, exclude_appointment_id=1)
    assert not is_available(7, t(14), t(16), existing, exclude_appointment_id=2)


def test_checks_do_not_affect_each_other():
    existing = [appointment(1, [7], t(9), t(10))]
    first = is_available(7, t(10), t(11), existing)
    second = is_available(7, t(12), t(13), existing)
    assert first and second
    assert is_available(7, t(10), t(11), existing) == first
    assert len(existing) == 1


def test_find_conflicts_returns_blocking_appointments():
    blocking = appointment(1, [7], t(14), t(15))
    existing = [blocking, appointment(2, [7], t(9), t(10)), appointment(3, [7], t(14), t(15), "rejected")]
    assert find_conflicts(7, t(13), t(16), existing) == [blocking]


def test_available_slots_skip_booked_time():
    existing = [appointment(1, [7], t(10), t(12))]
    slots = available_slots(DAY, existing, duration=60)
    starts = [slot["start_time"].hour for slot in slots]
    assert starts == [8, 9, 12, 13, 14, 15, 16, 17]


def test_available_slots_ignore_cancelled_bookings():
    existing = [appointment(1, [7], t(8), t(18), "cancelled")]
    assert len(available_slots(DAY, existing, duration=120)) == 5


def test_available_slots_reject_non_positive_duration():
    with pytest.raises(ValueError):
        available_slots(DAY, [], duration=0)

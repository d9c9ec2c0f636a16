from datetime import datetime
from types import SimpleNamespace

import pytest

from reservations.utils.pricing import (
    billable_hours,
    calculate_booking_cost,
    calculate_room_cost,
    to_minor_units,
)

START = datetime(2030, 5, 6, 10, 0)


def room(**overrides):
    data = {
        "id": 1,
        "name": "Conference Room A",
        "flat_rate": 5000,
        "hourly_rate": 1000,
        "attendee_rate": 300,
        "facilities": [
            {"id": "projector", "name": "Projector", "cost": 1500},
            {"id": "catering", "name": "Catering", "cost": 2500},
        ],
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def test_flat_cost_is_flat_rate():
    cost = calculate_room_cost(room(), "flat", START, datetime(2030, 5, 6, 18), 40, [])
    assert cost["base"] == 5000
    assert cost["total"] == 5000


def test_flat_cost_without_rate_is_zero():
    cost = calculate_room_cost(room(flat_rate=None), "flat", START, datetime(2030, 5, 6, 11), 1, [])
    assert cost["total"] == 0


def test_hourly_cost_rounds_partial_hours_up():
    cost = calculate_room_cost(room(), "hourly", START, datetime(2030, 5, 6, 11, 30), 1, [])
    assert cost["hours"] == 2
    assert cost["base"] == 2000


def test_hourly_cost_bills_at_least_one_hour():
    cost = calculate_room_cost(room(), "hourly", START, datetime(2030, 5, 6, 10, 20), 1, [])
    assert cost["hours"] == 1
    assert cost["base"] == 1000


@pytest.mark.parametrize(
    "end, hours",
    [
        (datetime(2030, 5, 6, 12, 0), 2),
        (datetime(2030, 5, 6, 12, 0, 1), 3),
        (datetime(2030, 5, 7, 10, 0), 24),
    ],
)
def test_billable_hours(end, hours):
    assert billable_hours(START, end) == hours


def test_per_attendee_cost():
    cost = calculate_room_cost(room(), "per_attendee", START, datetime(2030, 5, 6, 12), 5, [])
    assert cost["base"] == 1500


def test_facilities_are_added_once_and_unknown_names_ignored():
    cost = calculate_room_cost(
        room(), "flat", START, datetime(2030, 5, 6, 12), 3, ["Catering", "Catering", "Sauna"]
    )
    assert cost["facilities"] == [{"name": "Catering", "cost": 2500}]
    assert cost["total"] == 5000 + 2500


def test_facilities_do_not_scale_with_hours_or_attendees():
    short = calculate_room_cost(room(), "hourly", START, datetime(2030, 5, 6, 11), 1, ["Projector"])
    long = calculate_room_cost(room(), "hourly", START, datetime(2030, 5, 6, 15), 9, ["Projector"])
    assert short["total"] - short["base"] == long["total"] - long["base"] == 1500


def test_unknown_cost_type_is_rejected():
    with pytest.raises(ValueError):
        calculate_room_cost(room(), "monthly", START, datetime(2030, 5, 6, 11), 1, [])


def test_multi_room_costs_are_summed_and_hours_shared():
    end = datetime(2030, 5, 6, 12, 30)
    hall = room(id=2, name="Auditorium", hourly_rate=2000, facilities=[])
    breakdown = calculate_booking_cost(
        [(room(), "flat", ["Projector"]), (hall, "hourly", [])], START, end, 4
    )
    assert breakdown["hours"] == 3
    assert [r["total"] for r in breakdown["rooms"]] == [6500, 6000]
    assert breakdown["base"] == 5000 + 6000
    assert breakdown["total"] == 12500
    assert breakdown["facilities"] == [
        {"room_id": 1, "room_name": "Conference Room A", "name": "Projector", "cost": 1500}
    ]
    assert breakdown["is_custom"] is False


def test_cost_calculation_is_repeatable():
    end = datetime(2030, 5, 6, 11, 45)
    selections = [(room(), "hourly", ["Projector"])]
    assert calculate_booking_cost(selections, START, end, 2) == calculate_booking_cost(selections, START, end, 2)


@pytest.mark.parametrize(
    "amount, expected",
    [
        ("10", 1000),
        ("12.345", 1235),
        ("12.344", 1234),
        ("2.675", 268),
        ("0.005", 1),
        (19.99, 1999),
    ],
)
def test_to_minor_units_rounds_half_up_once(amount, expected):
    assert to_minor_units(amount) == expected

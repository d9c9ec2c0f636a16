import threading
from datetime import datetime, timedelta

import pytest
from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

from reservations.models.appointment import Appointment, RoomBooking
from reservations.models.audit_log import AuditLog
from reservations.models.setting import Setting
from reservations.schemas.appointment import AppointmentCreate
from reservations.services import audit
from reservations.services.booking import create_booking
from reservations.utils.errors import ConflictError
from reservations.utils.notifications import BaseSender, get_sender

from tests.conf_tests import (  # pylint: disable=unused-import
    TestingSessionLocal,
    app,
    at,
    auth_headers,
    booking_payload,
    clear_db,
    client,
    director_headers,
    make_appointment,
    other_guest_headers,
    outbox,
    second_room,
    test_db,
    test_location,
    test_room,
    test_user,
)

# pylint: disable=redefined-outer-name


def flat(room, *facilities):
    return {"room_id": room.id, "cost_type": "flat", "requested_facilities": list(facilities)}


def hourly(room):
    return {"room_id": room.id, "cost_type": "hourly"}


def test_create_booking(test_room, test_user, auth_headers):
    response = client.post(
        "/appointments/",
        json=booking_payload([flat(test_room, "Projector")], at(10), at(12)),
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "pending"
    assert data["title"] == "Team Meeting"
    assert data["start_time"] == at(10).isoformat()
    assert data["end_time"] == at(12).isoformat()
    assert data["created_by"] == test_user.id
    assert data["agreed_cost"] == 5000 + 1500
    assert data["cost_breakdown"]["total"] == data["agreed_cost"]
    assert data["cost_breakdown"]["is_custom"] is False
    assert data["rooms"] == [
        {
            "room_id": test_room.id,
            "room_name": "Conference Room A",
            "cost_type": "flat",
            "requested_facilities": ["Projector"],
            "cost": 6500,
        }
    ]

    assert len(outbox.messages) == 1
    assert outbox.messages[0]["recipient"] == "ana@example.com"
    assert outbox.messages[0]["subject"] == "Booking received: Team Meeting"


def test_create_booking_anonymous(test_room):
    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)))
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["created_by"] is None
    assert response.json()["status"] == "pending"


def test_create_booking_converts_offsets_to_utc(test_room):
    payload = booking_payload([flat(test_room)], at(10), at(11))
    payload["start_time"] = at(16).isoformat() + "+02:00"
    payload["end_time"] = at(17).isoformat() + "+02:00"
    response = client.post("/appointments/", json=payload)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["start_time"] == at(14).isoformat()
    assert response.json()["end_time"] == at(15).isoformat()


def test_create_booking_overlap_conflict(test_db, test_room):
    existing = make_appointment(test_db, test_room, at(14), at(15))

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(14, 30), at(15, 30)))
    assert response.status_code == status.HTTP_409_CONFLICT
    data = response.json()
    assert "Conference Room A" in data["detail"]
    assert data["conflicts"][0]["room_id"] == test_room.id
    assert data["conflicts"][0]["appointment_id"] == existing.id


@pytest.mark.parametrize("start, end", [(13, 14), (15, 16)])
def test_create_booking_adjacent_slots_allowed(test_db, test_room, start, end):
    make_appointment(test_db, test_room, at(14), at(15))

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(start), at(end)))
    assert response.status_code == status.HTTP_201_CREATED


@pytest.mark.parametrize("status_value", ["rejected", "cancelled"])
def test_inactive_statuses_do_not_block(test_db, test_room, status_value):
    make_appointment(test_db, test_room, at(14), at(15), status=status_value)

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(14), at(15)))
    assert response.status_code == status.HTTP_201_CREATED


def test_pending_booking_blocks(test_db, test_room):
    make_appointment(test_db, test_room, at(14), at(15), status="pending")

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(14), at(15)))
    assert response.status_code == status.HTTP_409_CONFLICT


def test_multi_room_booking(test_room, second_room):
    response = client.post(
        "/appointments/",
        json=booking_payload([flat(test_room), hourly(second_room)], at(10), at(12, 30)),
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert [r["room_name"] for r in data["rooms"]] == ["Conference Room A", "Auditorium"]
    assert [r["cost"] for r in data["rooms"]] == [5000, 3 * 2000]
    assert data["agreed_cost"] == 11000
    assert data["cost_breakdown"]["hours"] == 3


def test_multi_room_booking_is_all_or_nothing(test_db, test_room, second_room):
    make_appointment(test_db, second_room, at(10), at(11))

    response = client.post(
        "/appointments/",
        json=booking_payload([flat(test_room), hourly(second_room)], at(10), at(11)),
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert [c["room_name"] for c in response.json()["conflicts"]] == ["Auditorium"]

    assert test_db.query(Appointment).count() == 1
    assert test_db.query(RoomBooking).filter(RoomBooking.room_id == test_room.id).count() == 0
    assert test_db.query(AuditLog).count() == 0


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"title": ""}, "title"),
        ({"title": None}, "title"),
        ({"customer_name": "  "}, "customer_name"),
        ({"customer_email": None}, "customer_email"),
        ({"customer_email": "not-an-email"}, "customer_email"),
        ({"attendees_count": 0}, "attendees_count"),
        ({"rooms": []}, "rooms"),
        ({"start_time": None}, "start_time"),
        ({"end_time": None}, "end_time"),
    ],
)
def test_create_booking_invalid_fields(test_db, test_room, overrides, field):
    response = client.post(
        "/appointments/", json=booking_payload([flat(test_room)], at(10), at(11), **overrides)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert field in response.json()["errors"]
    assert test_db.query(Appointment).count() == 0


def test_create_booking_reports_every_invalid_field(test_room):
    response = client.post(
        "/appointments/",
        json=booking_payload([flat(test_room)], at(10), at(11), title="", customer_email=""),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert set(response.json()["errors"]) == {"title", "customer_email"}


@pytest.mark.parametrize("start, end", [(12, 11), (12, 12)])
def test_create_booking_end_not_after_start(test_room, start, end):
    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(start), at(end)))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "end_time" in response.json()["errors"]


def test_create_booking_in_the_past(test_room):
    now = datetime.utcnow()
    response = client.post(
        "/appointments/",
        json=booking_payload([flat(test_room)], now - timedelta(hours=3), now - timedelta(hours=2)),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"]["start_time"] == "Cannot book a time slot in the past"


def test_create_booking_same_room_twice(test_room):
    response = client.post(
        "/appointments/", json=booking_payload([flat(test_room), hourly(test_room)], at(10), at(11))
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "rooms" in response.json()["errors"]


def test_create_booking_unknown_cost_type(test_room):
    selection = {"room_id": test_room.id, "cost_type": "monthly"}
    response = client.post("/appointments/", json=booking_payload([selection], at(10), at(11)))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "rooms[0].cost_type" in response.json()["errors"]


def test_create_booking_cost_type_not_offered(second_room):
    response = client.post("/appointments/", json=booking_payload([flat(second_room)], at(10), at(11)))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "rooms[0].cost_type" in response.json()["errors"]


def test_create_booking_room_not_found():
    response = client.post(
        "/appointments/", json=booking_payload([{"room_id": 9999, "cost_type": "flat"}], at(10), at(11))
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Room not found"


def test_create_booking_over_capacity(test_room):
    response = client.post(
        "/appointments/", json=booking_payload([flat(test_room)], at(10), at(11), attendees_count=11)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "rooms[0].attendees_count" in response.json()["errors"]


def test_create_booking_inactive_room(test_db, test_room):
    test_room.active = False
    test_db.commit()

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "rooms[0]" in response.json()["errors"]


def test_order_numbers_are_sequential(test_room):
    first = client.post("/appointments/", json=booking_payload([flat(test_room)], at(9), at(10)))
    second = client.post("/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)))
    assert first.json()["order_number"] == 1
    assert second.json()["order_number"] == 2


class FailingSender(BaseSender):
    def send(self, recipient, subject, body):
        raise RuntimeError("SMTP server unavailable")


def test_notification_failure_keeps_booking(test_db, test_room):
    app.dependency_overrides[get_sender] = FailingSender

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)))
    assert response.status_code == status.HTTP_201_CREATED
    assert test_db.query(Appointment).count() == 1


@pytest.mark.parametrize("value", [{"enabled": False}, {"notify_on_create": False}])
def test_notifications_disabled_by_setting(test_db, test_room, value):
    test_db.add(Setting(key="email", value=value))
    test_db.commit()

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)))
    assert response.status_code == status.HTTP_201_CREATED
    assert outbox.messages == []


def test_create_booking_writes_audit_entry(test_room, test_user, auth_headers):
    appointment = client.post(
        "/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)), headers=auth_headers
    ).json()

    response = client.get(f"/appointments/{appointment['id']}/audit", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["action"] == "create"
    assert entries[0]["user_id"] == test_user.id
    assert entries[0]["old_data"] is None
    assert entries[0]["new_data"]["status"] == "pending"


def test_list_appointments_visibility(test_room, auth_headers, other_guest_headers, director_headers):
    client.post("/appointments/", json=booking_payload([flat(test_room)], at(9), at(10)), headers=auth_headers)
    client.post(
        "/appointments/", json=booking_payload([flat(test_room)], at(11), at(12)), headers=other_guest_headers
    )

    own = client.get("/appointments/", headers=auth_headers).json()
    assert [a["start_time"] for a in own] == [at(9).isoformat()]
    assert len(client.get("/appointments/", headers=director_headers).json()) == 2
    assert len(client.get("/appointments/?status=approved", headers=director_headers).json()) == 0


def test_get_appointment_of_another_guest(test_room, auth_headers, other_guest_headers):
    appointment = client.post(
        "/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)), headers=auth_headers
    ).json()

    response = client.get(f"/appointments/{appointment['id']}", headers=other_guest_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert client.get(f"/appointments/{appointment['id']}", headers=auth_headers).status_code == 200


def test_concurrent_bookings_for_same_slot(test_room):
    room_id = test_room.id
    results = []
    barrier = threading.Barrier(5)

    def book():
        db = TestingSessionLocal()
        booking = AppointmentCreate(
            **booking_payload([{"room_id": room_id, "cost_type": "flat"}], at(10), at(11))
        )
        try:
            barrier.wait()
            create_booking(db, booking)
            results.append("booked")
        except ConflictError:
            results.append("conflict")
        finally:
            db.close()

    threads = [threading.Thread(target=book) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(results) == ["booked"] + ["conflict"] * 4


def test_list_appointments_unknown_status(director_headers):
    response = client.get("/appointments/?status=finished", headers=director_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "status" in response.json()["errors"]


def test_storage_failure_rolls_back_booking(monkeypatch, test_db, test_room):
    def broken_record(*args, **kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(audit, "record", broken_record)

    response = client.post("/appointments/", json=booking_payload([flat(test_room)], at(10), at(11)))
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["detail"] == "Could not save changes"

    assert test_db.query(Appointment).count() == 0
    assert test_db.query(RoomBooking).count() == 0
    assert test_db.query(AuditLog).count() == 0
    assert outbox.messages == []

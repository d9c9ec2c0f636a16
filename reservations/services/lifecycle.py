"""
Appointment lifecycle.

    pending --approve--> approved --cancel--> cancelled
    pending --reject---> rejected
    pending --cancel---> cancelled

Rejected and cancelled appointments are final. Every change made here is
committed together with exactly one audit log entry. Status checks run
under ``booking_write_lock`` against the freshly re-read row.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from reservations.db import atomic
from reservations.models.appointment import STATUSES, Appointment
from reservations.schemas.appointment import AppointmentUpdate, CustomPricingUpdate, RoomSelection
from reservations.services import audit
from reservations.services.booking import (
    booking_write_lock,
    build_room_bookings,
    check_required,
    ensure_available,
    ensure_rates,
    load_rooms,
    price,
    resolve_rooms,
)
from reservations.utils.access import (
    ADMIN,
    ADMIN_OR_DIRECTOR,
    ensure_owner_or_staff,
    ensure_permitted,
    is_permitted,
    role_of,
)
from reservations.utils.errors import InvalidTransitionError, NotFoundError, ValidationError
from reservations.utils.notifications import BaseSender, notify
from reservations.utils.pricing import to_minor_units
from reservations.utils.validation_helpers import check_email, check_time_window

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("rejected", "cancelled")

# action -> (statuses it may start from, resulting status)
TRANSITIONS = {
    "approve": (("pending",), "approved"),
    "reject": (("pending",), "rejected"),
    "cancel": (("pending", "approved"), "cancelled"),
}

CONTACT_FIELDS = ("customer_phone", "customer_organization", "purpose", "notes")


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        logger.error(f"Appointment not found: {appointment_id}")
        raise NotFoundError("Appointment", appointment_id)
    return appointment


def get_appointment_for(db: Session, appointment_id: int, actor: Optional[dict]) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    ensure_owner_or_staff(actor, appointment)
    return appointment


def list_appointments(
    db: Session,
    actor: dict,
    status: Optional[str] = None,
    room_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Appointment]:
    """Admins and directors see everything, everyone else their own bookings."""
    if status and status not in STATUSES:
        raise ValidationError({"status": f"Unknown status: {status}"}, detail="Invalid filter")
    query = db.query(Appointment)
    if not is_permitted(role_of(actor), ADMIN_OR_DIRECTOR):
        query = query.filter(Appointment.created_by == actor["id"])
    if status:
        query = query.filter(Appointment.status == status)
    if room_id is not None:
        query = query.filter(Appointment.rooms.any(room_id=room_id))
    return query.order_by(Appointment.start_time).offset(skip).limit(limit).all()


def audit_history(db: Session, appointment_id: int, actor: dict):
    get_appointment_for(db, appointment_id, actor)
    return audit.history(db, appointment_id)


def _reload(db: Session, appointment: Appointment) -> None:
    """Re-read the row so status checks see the latest committed state."""
    db.refresh(appointment)


def _ensure_editable(appointment: Appointment, attempted: str) -> None:
    if appointment.status in TERMINAL_STATUSES:
        logger.error(f"Cannot {attempted} appointment {appointment.id} in status {appointment.status}")
        raise InvalidTransitionError(appointment.status, attempted)


def transition(
    db: Session,
    appointment_id: int,
    action: str,
    actor: dict,
    reason: Optional[str] = None,
    sender: Optional[BaseSender] = None,
) -> Appointment:
    allowed_from, target = TRANSITIONS[action]
    if action != "cancel":
        ensure_permitted(actor, ADMIN_OR_DIRECTOR)
    appointment = get_appointment(db, appointment_id)
    if action == "cancel":
        ensure_owner_or_staff(actor, appointment)

    with booking_write_lock:
        with atomic(db):
            _reload(db, appointment)
            old_status = appointment.status
            if old_status not in allowed_from:
                logger.error(f"Invalid transition {action} for appointment {appointment_id} in status {old_status}")
                raise InvalidTransitionError(old_status, action)

            old_data = {"status": old_status}
            new_data = {"status": target}
            appointment.status = target
            if action == "reject":
                appointment.rejection_reason = reason or "No reason provided"
                new_data["rejection_reason"] = appointment.rejection_reason
            audit.record(db, appointment.id, actor, action, old_data, new_data, ["status"])

    db.refresh(appointment)
    logger.debug(f"Appointment {appointment_id}: {old_status} -> {target}")
    notify(db, sender, appointment, "status_changed", old_status=old_status)
    return appointment


def approve(db: Session, appointment_id: int, actor: dict, sender: Optional[BaseSender] = None):
    return transition(db, appointment_id, "approve", actor, sender=sender)


def reject(
    db: Session,
    appointment_id: int,
    actor: dict,
    reason: Optional[str] = None,
    sender: Optional[BaseSender] = None,
):
    return transition(db, appointment_id, "reject", actor, reason=reason, sender=sender)


def cancel(db: Session, appointment_id: int, actor: dict, sender: Optional[BaseSender] = None):
    return transition(db, appointment_id, "cancel", actor, sender=sender)


def current_selections(appointment: Appointment) -> List[RoomSelection]:
    selections = []
    for booking in appointment.rooms:
        if booking.room_id is None:
            raise NotFoundError("Room")
        selections.append(
            RoomSelection(
                room_id=booking.room_id,
                cost_type=booking.cost_type,
                requested_facilities=list(booking.requested_facilities or []),
            )
        )
    return selections


def _validate_changes(appointment: Appointment, changes: dict) -> None:
    errors = {}
    if "title" in changes:
        check_required(errors, "title", changes["title"], "Title")
    if "customer_name" in changes:
        check_required(errors, "customer_name", changes["customer_name"], "Customer name")
    if "customer_email" in changes:
        email_error = check_email(changes["customer_email"])
        if email_error:
            errors["customer_email"] = email_error
    if "attendees_count" in changes and (changes["attendees_count"] or 0) < 1:
        errors["attendees_count"] = "At least one attendee is required"
    if "rooms" in changes:
        room_ids = [selection["room_id"] for selection in changes["rooms"] or []]
        if not room_ids:
            errors["rooms"] = "Select at least one room"
        elif len(set(room_ids)) != len(room_ids):
            errors["rooms"] = "A room can only be selected once"
    if "start_time" in changes or "end_time" in changes:
        errors.update(
            check_time_window(
                changes.get("start_time", appointment.start_time),
                changes.get("end_time", appointment.end_time),
            )
        )
    if errors:
        logger.error(f"Invalid changes for appointment {appointment.id}: {errors}")
        raise ValidationError(errors, detail="Invalid appointment changes")


def edit_appointment(
    db: Session,
    appointment_id: int,
    update: AppointmentUpdate,
    actor: dict,
    sender: Optional[BaseSender] = None,
) -> Appointment:
    """
    Apply field edits to a pending or approved appointment.

    Changing the time, rooms or attendee count re-runs room checks,
    availability and pricing exactly as booking creation does. A custom
    price set by staff is kept.
    """
    appointment = get_appointment(db, appointment_id)
    ensure_owner_or_staff(actor, appointment)

    changes = update.model_dump(exclude_unset=True)
    _validate_changes(appointment, changes)

    schedule_changed = bool({"rooms", "start_time", "end_time", "attendees_count"} & set(changes))
    selections = update.rooms if "rooms" in changes else None

    with booking_write_lock:
        with atomic(db):
            _reload(db, appointment)
            _ensure_editable(appointment, "edit")
            start = changes.get("start_time", appointment.start_time)
            end = changes.get("end_time", appointment.end_time)
            attendees_count = changes.get("attendees_count", appointment.attendees_count)
            old = audit.snapshot(appointment)
            if schedule_changed:
                choices = resolve_rooms(db, selections or current_selections(appointment), attendees_count)
                ensure_available(db, choices, start, end, exclude_appointment_id=appointment.id)
                breakdown = price(choices, start, end, attendees_count)
                appointment.start_time = start
                appointment.end_time = end
                appointment.attendees_count = attendees_count
                if selections is not None:
                    appointment.rooms = build_room_bookings(choices, breakdown)
                elif not appointment.is_custom_priced:
                    for booking, entry in zip(appointment.rooms, breakdown["rooms"]):
                        booking.cost = entry["total"]
                if not appointment.is_custom_priced:
                    appointment.agreed_cost = breakdown["total"]
                    appointment.cost_breakdown = breakdown

            for field in ("title", "customer_name", "customer_email"):
                if field in changes:
                    setattr(appointment, field, changes[field].strip())
            for field in CONTACT_FIELDS:
                if field in changes:
                    setattr(appointment, field, changes[field])

            changed, old_values, new_values = audit.diff(old, audit.snapshot(appointment))
            if changed:
                audit.record(db, appointment.id, actor, "update", old_values, new_values, changed)

    db.refresh(appointment)
    if changed:
        logger.debug(f"Updated appointment {appointment_id}, fields: {changed}")
        notify(db, sender, appointment, "updated")
    return appointment


def set_custom_pricing(
    db: Session,
    appointment_id: int,
    change: CustomPricingUpdate,
    actor: dict,
    sender: Optional[BaseSender] = None,
) -> Appointment:
    """
    Override the computed price, or drop the override and recompute.

    While the override is on, the stored cost is authoritative and nothing
    recomputes it.
    """
    ensure_permitted(actor, ADMIN_OR_DIRECTOR)
    appointment = get_appointment(db, appointment_id)

    with booking_write_lock:
        with atomic(db):
            _reload(db, appointment)
            _ensure_editable(appointment, "reprice")
            old = {"agreed_cost": appointment.agreed_cost, "cost_breakdown": appointment.cost_breakdown}
            if change.is_custom:
                if change.agreed_cost is not None:
                    agreed_cost = change.agreed_cost
                else:
                    agreed_cost = to_minor_units(change.agreed_amount)
                breakdown = dict(appointment.cost_breakdown or {})
                breakdown.update(total=agreed_cost, is_custom=True)
            else:
                selections = current_selections(appointment)
                rooms = load_rooms(db, [selection.room_id for selection in selections])
                choices = [(rooms[selection.room_id], selection) for selection in selections]
                ensure_rates(choices)
                breakdown = price(
                    choices, appointment.start_time, appointment.end_time, appointment.attendees_count
                )
                agreed_cost = breakdown["total"]
                for booking, entry in zip(appointment.rooms, breakdown["rooms"]):
                    booking.cost = entry["total"]
            appointment.agreed_cost = agreed_cost
            appointment.cost_breakdown = breakdown
            new = {"agreed_cost": agreed_cost, "cost_breakdown": breakdown}
            audit.record(db, appointment.id, actor, "pricing", old, new)

    db.refresh(appointment)
    logger.debug(f"Pricing of appointment {appointment_id} set to {agreed_cost} (custom: {change.is_custom})")
    notify(db, sender, appointment, "updated")
    return appointment


def delete_appointment(db: Session, appointment_id: int, actor: dict) -> None:
    ensure_permitted(actor, ADMIN)
    appointment = get_appointment(db, appointment_id)
    with booking_write_lock:
        with atomic(db):
            audit.record(db, appointment.id, actor, "delete", audit.snapshot(appointment), None)
            db.delete(appointment)
    logger.debug(f"Deleted appointment: {appointment_id}")

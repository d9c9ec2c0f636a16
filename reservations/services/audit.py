from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from reservations.models.audit_log import AuditLog

SNAPSHOT_FIELDS = (
    "title",
    "status",
    "start_time",
    "end_time",
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_organization",
    "attendees_count",
    "purpose",
    "notes",
    "agreed_cost",
    "cost_breakdown",
    "rejection_reason",
)


def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def snapshot(appointment) -> dict:
    """JSON-ready copy of the appointment fields tracked by the audit log."""
    data = {field: _jsonable(getattr(appointment, field)) for field in SNAPSHOT_FIELDS}
    data["rooms"] = [
        {
            "room_id": booking.room_id,
            "room_name": booking.room_name,
            "cost_type": booking.cost_type,
            "requested_facilities": list(booking.requested_facilities or []),
            "cost": booking.cost,
        }
        for booking in appointment.rooms
    ]
    return data


def diff(old: dict, new: dict):
    """Return ``(changed_fields, old_values, new_values)`` for differing keys."""
    changed = [key for key in new if old.get(key) != new[key]]
    return changed, {key: old.get(key) for key in changed}, {key: new[key] for key in changed}


def record(
    db: Session,
    appointment_id: int,
    actor: Optional[dict],
    action: str,
    old_data: Optional[dict] = None,
    new_data: Optional[dict] = None,
    changed_fields: Optional[List[str]] = None,
) -> AuditLog:
    """Append an entry to the session; the caller's transaction commits it."""
    if changed_fields is None:
        changed_fields = sorted(set(old_data or {}) | set(new_data or {}))
    entry = AuditLog(
        appointment_id=appointment_id,
        user_id=actor["id"] if actor else None,
        action=action,
        old_data=old_data,
        new_data=new_data,
        changed_fields=changed_fields,
    )
    db.add(entry)
    return entry


def history(db: Session, appointment_id: int) -> List[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.appointment_id == appointment_id)
        .order_by(AuditLog.created_at, AuditLog.id)
        .all()
    )

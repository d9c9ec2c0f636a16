import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from reservations.db import get_db
from reservations.schemas.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    CustomPricingUpdate,
    RejectRequest,
)
from reservations.schemas.audit_log import AuditLogResponse
from reservations.services import lifecycle
from reservations.services.booking import create_booking
from reservations.utils.auth import get_current_user, get_optional_user
from reservations.utils.notifications import BaseSender, get_sender

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a booking",
    description="Book one or more rooms for a time window. Anonymous guests may book too.",
)
def create_appointment(
    booking: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: Optional[dict] = Depends(get_optional_user),
    sender: BaseSender = Depends(get_sender),
):
    """
    Request a booking. The appointment starts out pending.

    - **title**: Event name.
    - **rooms**: Rooms to book, each with its pricing model and facilities.
    - **start_time** / **end_time**: Booking window, shared by all rooms.
    - **customer_name** / **customer_email**: Contact details.
    - **attendees_count**: Expected attendees.

    Fails as a whole if any room is taken.
    """
    logger.debug(f"Booking request from {current_user['username'] if current_user else 'anonymous guest'}")
    return create_booking(db, booking, current_user, sender)


@router.get("/", response_model=List[AppointmentResponse], summary="List appointments")
def get_appointments(
    status: Optional[str] = None,
    room_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """
    Admins and directors see all appointments, other users their own.
    """
    return lifecycle.list_appointments(db, current_user, status=status, room_id=room_id, skip=skip, limit=limit)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int, db: Session = Depends(get_db), current_user: dict = Depends(get_current_user)
):
    return lifecycle.get_appointment_for(db, appointment_id, current_user)


@router.put("/{appointment_id}", response_model=AppointmentResponse, summary="Edit an appointment")
@router.patch("/{appointment_id}", response_model=AppointmentResponse, summary="Edit an appointment")
def update_appointment(
    appointment_id: int,
    appointment_update: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    sender: BaseSender = Depends(get_sender),
):
    """
    Edit a pending or approved appointment.
    Requires ownership or the admin/director role. Changing the window,
    rooms or attendee count re-checks availability and the price.
    """
    return lifecycle.edit_appointment(db, appointment_id, appointment_update, current_user, sender)


@router.post("/{appointment_id}/approve", response_model=AppointmentResponse)
def approve_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    sender: BaseSender = Depends(get_sender),
):
    return lifecycle.approve(db, appointment_id, current_user, sender)


@router.post("/{appointment_id}/reject", response_model=AppointmentResponse)
def reject_appointment(
    appointment_id: int,
    rejection: Optional[RejectRequest] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    sender: BaseSender = Depends(get_sender),
):
    reason = rejection.reason if rejection else None
    return lifecycle.reject(db, appointment_id, current_user, reason, sender)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    sender: BaseSender = Depends(get_sender),
):
    return lifecycle.cancel(db, appointment_id, current_user, sender)


@router.put("/{appointment_id}/pricing", response_model=AppointmentResponse)
def update_pricing(
    appointment_id: int,
    pricing: CustomPricingUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    sender: BaseSender = Depends(get_sender),
):
    """
    Set a custom agreed price, or switch back to the computed one.
    """
    return lifecycle.set_custom_pricing(db, appointment_id, pricing, current_user, sender)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int, db: Session = Depends(get_db), current_user: dict = Depends(get_current_user)
):
    """
    Delete an appointment.
    Admin only.
    """
    lifecycle.delete_appointment(db, appointment_id, current_user)
    return None


@router.get("/{appointment_id}/audit", response_model=List[AuditLogResponse])
def get_audit_log(
    appointment_id: int, db: Session = Depends(get_db), current_user: dict = Depends(get_current_user)
):
    return lifecycle.audit_history(db, appointment_id, current_user)

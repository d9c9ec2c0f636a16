import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from reservations.db import get_db
from reservations.models.location import Location
from reservations.models.room import Room
from reservations.schemas.appointment import AppointmentResponse
from reservations.schemas.room import RoomCreate, RoomResponse, RoomUpdate
from reservations.services.lifecycle import list_appointments
from reservations.utils.access import ADMIN, ADMIN_OR_DIRECTOR, require
from reservations.utils.auth import get_current_user
from reservations.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)

NULLABLE_FIELDS = ("description", "flat_rate", "hourly_rate", "attendee_rate")


def get_room_or_404(db: Session, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        logger.error(f"Room not found: {room_id}")
        raise NotFoundError("Room", room_id)
    return room


def ensure_location(db: Session, location_id: int) -> None:
    if not db.query(Location).filter(Location.id == location_id).first():
        logger.error(f"Location not found: {location_id}")
        raise NotFoundError("Location", location_id)


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    room: RoomCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require(ADMIN_OR_DIRECTOR)),
):
    """
    Create a new room.
    Requires admin or director role.
    """
    ensure_location(db, room.location_id)
    db_room = Room(**room.model_dump())
    db.add(db_room)
    db.commit()
    db.refresh(db_room)
    logger.debug(f"Created room: {db_room.id}")
    return db_room


@router.get("/", response_model=List[RoomResponse])
def get_rooms(
    skip: int = 0,
    limit: int = 100,
    location_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """
    Retrieve a list of all rooms.
    """
    query = db.query(Room)
    if location_id is not None:
        query = query.filter(Room.location_id == location_id)
    return query.order_by(Room.id).offset(skip).limit(limit).all()


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db), current_user: dict = Depends(get_current_user)):
    """
    Retrieve a specific room by ID.
    """
    return get_room_or_404(db, room_id)


@router.put("/{room_id}", response_model=RoomResponse)
@router.patch("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    room_update: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require(ADMIN_OR_DIRECTOR)),
):
    """
    Update a room's details.
    Requires admin or director role. Existing bookings keep the room name
    and price they were made with.
    """
    db_room = get_room_or_404(db, room_id)
    update_data = room_update.model_dump(exclude_unset=True)
    if update_data.get("location_id") is not None:
        ensure_location(db, update_data["location_id"])

    for key, value in update_data.items():
        if value is None and key not in NULLABLE_FIELDS:
            continue
        setattr(db_room, key, value)
    if not db_room.cost_types:
        db.rollback()
        raise ValidationError(
            {"rates": "At least one of flat_rate, hourly_rate or attendee_rate is required"},
            detail="Invalid room data",
        )

    db.commit()
    db.refresh(db_room)
    return db_room


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(room_id: int, db: Session = Depends(get_db), current_user: dict = Depends(require(ADMIN))):
    """
    Delete a room.
    Admin only.
    """
    db_room = get_room_or_404(db, room_id)
    db.delete(db_room)
    db.commit()
    logger.debug(f"Deleted room: {room_id}")
    return None


@router.get("/{room_id}/appointments", response_model=List[AppointmentResponse])
def get_room_appointments(
    room_id: int,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require(ADMIN_OR_DIRECTOR)),
):
    get_room_or_404(db, room_id)
    return list_appointments(db, current_user, status=status, room_id=room_id)

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from reservations.db import get_db
from reservations.models.location import Location
from reservations.models.room import Room
from reservations.schemas.location import LocationCreate, LocationResponse, LocationUpdate
from reservations.schemas.room import RoomResponse
from reservations.utils.access import ADMIN, ADMIN_OR_DIRECTOR, require
from reservations.utils.auth import get_current_user
from reservations.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/locations",
    tags=["locations"],
)


def get_location_or_404(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        logger.error(f"Location not found: {location_id}")
        raise NotFoundError("Location", location_id)
    return location


@router.post("/", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
def create_location(
    location: LocationCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require(ADMIN_OR_DIRECTOR)),
):
    db_location = Location(**location.model_dump())
    db.add(db_location)
    db.commit()
    db.refresh(db_location)
    return db_location


@router.get("/", response_model=List[LocationResponse])
def get_locations(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return db.query(Location).order_by(Location.id).offset(skip).limit(limit).all()


@router.get("/{location_id}", response_model=LocationResponse)
def get_location(location_id: int, db: Session = Depends(get_db), current_user: dict = Depends(get_current_user)):
    return get_location_or_404(db, location_id)


@router.get("/{location_id}/rooms", response_model=List[RoomResponse])
def get_location_rooms(
    location_id: int, db: Session = Depends(get_db), current_user: dict = Depends(get_current_user)
):
    get_location_or_404(db, location_id)
    return db.query(Room).filter(Room.location_id == location_id).order_by(Room.id).all()


@router.put("/{location_id}", response_model=LocationResponse)
@router.patch("/{location_id}", response_model=LocationResponse)
def update_location(
    location_id: int,
    location_update: LocationUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require(ADMIN_OR_DIRECTOR)),
):
    db_location = get_location_or_404(db, location_id)
    for key, value in location_update.model_dump(exclude_unset=True).items():
        setattr(db_location, key, value)
    db.commit()
    db.refresh(db_location)
    return db_location


@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_location(
    location_id: int, db: Session = Depends(get_db), current_user: dict = Depends(require(ADMIN))
):
    """
    Delete a location.
    Admin only; the location must not have rooms left.
    """
    db_location = get_location_or_404(db, location_id)
    if db.query(Room).filter(Room.location_id == location_id).count():
        logger.error(f"Location {location_id} still has rooms")
        raise ValidationError(
            {"location_id": "Location still has rooms"},
            detail="Cannot delete location with associated rooms. Delete the rooms first.",
        )
    db.delete(db_location)
    db.commit()
    logger.debug(f"Deleted location: {location_id}")
    return None

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reservations.db import get_db
from reservations.models.user import User
from reservations.schemas.user import UserResponse, UserRoleUpdate
from reservations.utils.access import ADMIN, require
from reservations.utils.errors import NotFoundError

router = APIRouter(
    prefix="/users",
    tags=["users"],
)


@router.get("/", response_model=List[UserResponse])
def get_users(db: Session = Depends(get_db), current_user: dict = Depends(require(ADMIN))):
    return db.query(User).order_by(User.id).all()


@router.put("/{user_id}/role", response_model=UserResponse)
def set_user_role(
    user_id: int,
    role_update: UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require(ADMIN)),
):
    """
    Change a user's role.
    Admin only.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User", user_id)
    user.role = role_update.role
    db.commit()
    db.refresh(user)
    return user

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reservations.db import get_db
from reservations.models.setting import Setting
from reservations.schemas.setting import SettingResponse, SettingUpdate
from reservations.utils.access import ADMIN, require
from reservations.utils.errors import NotFoundError

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
)


@router.get("/", response_model=List[SettingResponse])
def get_settings(db: Session = Depends(get_db), current_user: dict = Depends(require(ADMIN))):
    return db.query(Setting).order_by(Setting.key).all()


@router.get("/{key}", response_model=SettingResponse)
def get_setting(key: str, db: Session = Depends(get_db), current_user: dict = Depends(require(ADMIN))):
    setting = db.query(Setting).filter(Setting.key == key).first()
    if not setting:
        raise NotFoundError("Setting")
    return setting


@router.put("/{key}", response_model=SettingResponse)
def put_setting(
    key: str,
    setting_update: SettingUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require(ADMIN)),
):
    """
    Create or replace a setting.

    The ``email`` setting controls notifications: ``enabled``,
    ``notify_on_create``, ``notify_on_update`` and ``notify_on_status_change``.
    """
    setting = db.query(Setting).filter(Setting.key == key).first()
    if setting is None:
        setting = Setting(key=key)
        db.add(setting)
    setting.value = setting_update.value
    db.commit()
    db.refresh(setting)
    return setting

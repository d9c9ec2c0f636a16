from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SettingUpdate(BaseModel):
    value: dict


class SettingResponse(BaseModel):
    key: str
    value: dict
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

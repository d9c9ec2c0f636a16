from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Facility(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = Field(min_length=1)
    cost: int = Field(ge=0)


class RoomBase(BaseModel):
    name: str = Field(min_length=1)
    location_id: int
    capacity: int = Field(gt=0)
    description: Optional[str] = None
    flat_rate: Optional[int] = Field(default=None, ge=0)
    hourly_rate: Optional[int] = Field(default=None, ge=0)
    attendee_rate: Optional[int] = Field(default=None, ge=0)
    facilities: List[Facility] = []
    active: bool = True


class RoomCreate(RoomBase):
    @model_validator(mode="after")
    def check_rates(self):
        if self.flat_rate is None and self.hourly_rate is None and self.attendee_rate is None:
            raise ValueError("At least one of flat_rate, hourly_rate or attendee_rate is required")
        return self


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    location_id: Optional[int] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None
    flat_rate: Optional[int] = Field(default=None, ge=0)
    hourly_rate: Optional[int] = Field(default=None, ge=0)
    attendee_rate: Optional[int] = Field(default=None, ge=0)
    facilities: Optional[List[Facility]] = None
    active: Optional[bool] = None


class RoomResponse(RoomBase):
    id: int
    cost_types: List[str]

    model_config = ConfigDict(from_attributes=True)

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from schoolsched.models.timeslot import TimeslotType, Weekday
from schoolsched.schemas.common import ActionResult, normalize_day, normalize_time


class TimeslotFields(BaseModel):
    day: Weekday
    start_time: str
    end_time: str
    type: TimeslotType = TimeslotType.regular
    label: str | None = Field(default=None, max_length=100)

    @field_validator("day", mode="before")
    @classmethod
    def lower_day(cls, value):
        return normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return normalize_time(value)


class TimeslotCreate(TimeslotFields):
    class_id: str


class TimeslotBulkCreate(BaseModel):
    class_id: str
    timeslots: list[TimeslotFields] = Field(min_length=1, max_length=200)


class TimeslotUpdate(BaseModel):
    day: Weekday | None = None
    start_time: str | None = None
    end_time: str | None = None
    type: TimeslotType | None = None
    label: str | None = Field(default=None, max_length=100)

    @field_validator("day", mode="before")
    @classmethod
    def lower_day(cls, value):
        return normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_time(value)


class TimeslotOut(TimeslotFields):
    id: str
    class_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TimeslotCreateOut(TimeslotOut):
    created_schedule_slots: int = 0


class TimeslotBulkOut(BaseModel):
    count: int
    timeslots: list[TimeslotOut]


class TimeslotDeleteOut(ActionResult):
    deleted_schedule_slots: int

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from schoolsched.models.timeslot import TimeslotType, Weekday
from schoolsched.schemas.common import normalize_day


class ExportFormat(str, Enum):
    csv = "csv"
    xlsx = "xlsx"


class AssignSubjectRequest(BaseModel):
    schedule_id: str
    timeslot_id: str
    subject_id: str


class AssignTeacherRequest(BaseModel):
    slot_id: str
    teacher_id: str


class BulkSlotData(BaseModel):
    id: str | None = None
    timeslot_id: str | None = None
    day: Weekday | None = None
    type: TimeslotType | None = None
    subject_id: str | None = None
    teacher_id: str | None = None
    room_id: str | None = None

    @field_validator("day", mode="before")
    @classmethod
    def lower_day(cls, value):
        return normalize_day(value)


class BulkOperation(BaseModel):
    action: Literal["create", "update", "delete"]
    slot_data: BulkSlotData

    @model_validator(mode="after")
    def validate_action_requirements(self) -> "BulkOperation":
        if self.action == "create" and not self.slot_data.timeslot_id:
            raise ValueError("timeslot_id is required for create operations")
        return self


class BulkTimetableRequest(BaseModel):
    schedule_id: str
    operations: list[BulkOperation] = Field(min_length=1, max_length=500)


class TimetableValidateRequest(BaseModel):
    schedule_id: str
    check_conflicts: bool = True
    check_completeness: bool = True


class TimetableValidationOut(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]

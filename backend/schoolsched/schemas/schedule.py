from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from schoolsched.models.schedule import ScheduleStatus
from schoolsched.models.timeslot import TimeslotType, Weekday
from schoolsched.schemas.common import ActionResult, normalize_day, normalize_time
from schoolsched.schemas.room import RoomOut
from schoolsched.schemas.subject import SubjectOut
from schoolsched.schemas.teacher import TeacherOut


class ScheduleCreate(BaseModel):
    class_id: str
    name: str = Field(min_length=1, max_length=200)
    academic_year: str = Field(min_length=4, max_length=20)
    start_date: date
    end_date: date
    effective_from: date


class ScheduleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    academic_year: str | None = Field(default=None, min_length=4, max_length=20)
    start_date: date | None = None
    end_date: date | None = None
    effective_from: date | None = None


class ScheduleOut(BaseModel):
    id: str
    class_id: str
    name: str
    academic_year: str
    start_date: date
    end_date: date
    effective_from: date
    status: ScheduleStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ScheduleCreateOut(ScheduleOut):
    created_schedule_slots: int = 0


class ScheduleDeleteOut(ActionResult):
    deleted_schedule_slots: int


class DefaultScheduleRequest(BaseModel):
    class_id: str


class SlotTimeslot(BaseModel):
    id: str
    day: Weekday
    start_time: str
    end_time: str
    type: TimeslotType
    label: str | None = None

    model_config = {"from_attributes": True}


class ScheduleSlotCreate(BaseModel):
    schedule_id: str
    timeslot_id: str
    day: Weekday
    type: TimeslotType | None = None
    subject_id: str | None = None
    teacher_id: str | None = None
    room_id: str | None = None

    @field_validator("day", mode="before")
    @classmethod
    def lower_day(cls, value):
        return normalize_day(value)


class ScheduleSlotUpdate(BaseModel):
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


class ScheduleSlotOut(BaseModel):
    id: str
    schedule_id: str
    timeslot_id: str
    day: Weekday
    type: TimeslotType
    subject_id: str | None = None
    teacher_id: str | None = None
    room_id: str | None = None
    has_conflict: bool
    timeslot: SlotTimeslot | None = None
    subject: SubjectOut | None = None
    teacher: TeacherOut | None = None
    room: RoomOut | None = None

    model_config = {"from_attributes": True}


class ScheduleDetailOut(ScheduleOut):
    slots: list[ScheduleSlotOut] = Field(default_factory=list)


class TeacherConflictCheck(BaseModel):
    teacher_id: str
    day: Weekday
    start_time: str
    end_time: str
    exclude_slot_id: str | None = None

    @field_validator("day", mode="before")
    @classmethod
    def lower_day(cls, value):
        return normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return normalize_time(value)


class ConflictingSlotOut(BaseModel):
    slot_id: str
    schedule_id: str
    schedule_name: str
    class_id: str
    class_name: str | None = None
    timeslot_id: str
    day: Weekday
    start_time: str
    end_time: str


class TeacherConflictOut(BaseModel):
    has_conflict: bool
    conflicting_slots: list[ConflictingSlotOut] | None = None

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from schoolsched.db.base import Base


class Weekday(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


WEEKDAY_ORDER: dict[Weekday, int] = {day: index for index, day in enumerate(Weekday)}


class TimeslotType(str, Enum):
    regular = "regular"
    break_ = "break"
    lunch = "lunch"
    activity = "activity"
    study_hall = "study_hall"
    free_period = "free_period"


class ClassTimeslot(Base):
    __tablename__ = "class_timeslots"
    __table_args__ = (
        # Partial so a soft-deleted range can be recreated.
        Index(
            "uq_class_timeslots_range",
            "class_id",
            "day",
            "start_time",
            "end_time",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id: Mapped[str] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), index=True, nullable=False)
    day: Mapped[Weekday] = mapped_column(SAEnum(Weekday, name="weekday"), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    type: Mapped[TimeslotType] = mapped_column(
        SAEnum(TimeslotType, name="timeslot_type", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
        default=TimeslotType.regular,
    )
    label: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    deleted_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    school_class = relationship("SchoolClass")

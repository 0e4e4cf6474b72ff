import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from schoolsched.db.base import Base
from schoolsched.models.timeslot import TimeslotType, Weekday


class ScheduleSlot(Base):
    __tablename__ = "schedule_slots"
    __table_args__ = (
        UniqueConstraint("schedule_id", "timeslot_id", name="uq_schedule_slots_schedule_timeslot"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    schedule_id: Mapped[str] = mapped_column(
        ForeignKey("class_schedules.id", ondelete="CASCADE"), index=True, nullable=False
    )
    timeslot_id: Mapped[str] = mapped_column(
        ForeignKey("class_timeslots.id", ondelete="CASCADE"), index=True, nullable=False
    )
    day: Mapped[Weekday] = mapped_column(SAEnum(Weekday, name="weekday"), nullable=False)
    type: Mapped[TimeslotType] = mapped_column(
        SAEnum(TimeslotType, name="timeslot_type", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
        default=TimeslotType.regular,
    )
    subject_id: Mapped[str | None] = mapped_column(ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True)
    teacher_id: Mapped[str | None] = mapped_column(
        ForeignKey("teachers.id", ondelete="SET NULL"), index=True, nullable=True
    )
    room_id: Mapped[str | None] = mapped_column(ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    has_conflict: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    schedule = relationship("ClassSchedule", back_populates="slots")
    timeslot = relationship("ClassTimeslot")
    subject = relationship("Subject")
    teacher = relationship("Teacher")
    room = relationship("Room")

"""Teacher double-booking detection.

A teacher conflicts with an existing schedule slot when both fall on the same
day and their time ranges overlap as half-open intervals: back-to-back
periods (one ending exactly when the other starts) never conflict. Slots in
every live schedule count, not only the schedule being edited.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from schoolsched.core.exceptions import BadRequestError
from schoolsched.models.schedule import ClassSchedule
from schoolsched.models.schedule_slot import ScheduleSlot
from schoolsched.models.timeslot import ClassTimeslot, Weekday

logger = logging.getLogger(__name__)


@dataclass
class ConflictCheckResult:
    has_conflict: bool
    conflicting_slots: list[ScheduleSlot] = field(default_factory=list)


def ranges_overlap(start_time: str, end_time: str, other_start: str, other_end: str) -> bool:
    # HH:MM strings are zero padded, so string order is time order.
    return (
        (start_time <= other_start < end_time)
        or (start_time < other_end <= end_time)
        or (other_start <= start_time and other_end >= end_time)
    )


def _overlap_clause(start_time: str, end_time: str):
    return or_(
        and_(ClassTimeslot.start_time >= start_time, ClassTimeslot.start_time < end_time),
        and_(ClassTimeslot.end_time > start_time, ClassTimeslot.end_time <= end_time),
        and_(ClassTimeslot.start_time <= start_time, ClassTimeslot.end_time >= end_time),
    )


def find_conflicting_slots(
    db: Session,
    *,
    teacher_id: str,
    day: Weekday,
    start_time: str,
    end_time: str,
    exclude_slot_id: str | None = None,
) -> list[ScheduleSlot]:
    statement = (
        select(ScheduleSlot)
        .join(ClassTimeslot, ScheduleSlot.timeslot_id == ClassTimeslot.id)
        .join(ClassSchedule, ScheduleSlot.schedule_id == ClassSchedule.id)
        .where(
            ScheduleSlot.teacher_id == teacher_id,
            ScheduleSlot.day == day,
            ClassTimeslot.deleted_at.is_(None),
            ClassSchedule.deleted_at.is_(None),
            _overlap_clause(start_time, end_time),
        )
        .order_by(ClassTimeslot.start_time)
    )
    if exclude_slot_id:
        statement = statement.where(ScheduleSlot.id != exclude_slot_id)
    return list(db.execute(statement).scalars())


def check_teacher_conflict(
    db: Session,
    *,
    teacher_id: str,
    day: Weekday,
    start_time: str,
    end_time: str,
    exclude_slot_id: str | None = None,
) -> ConflictCheckResult:
    if start_time >= end_time:
        raise BadRequestError("Start time must be before end time")
    slots = find_conflicting_slots(
        db,
        teacher_id=teacher_id,
        day=day,
        start_time=start_time,
        end_time=end_time,
        exclude_slot_id=exclude_slot_id,
    )
    return ConflictCheckResult(has_conflict=bool(slots), conflicting_slots=slots)


def slot_has_conflict(db: Session, slot: ScheduleSlot, timeslot: ClassTimeslot) -> bool:
    """Evaluate ``slot`` against every other slot of its teacher."""
    if not slot.teacher_id:
        return False
    return bool(
        find_conflicting_slots(
            db,
            teacher_id=slot.teacher_id,
            day=slot.day,
            start_time=timeslot.start_time,
            end_time=timeslot.end_time,
            exclude_slot_id=slot.id,
        )
    )


def describe_conflicting_slot(slot: ScheduleSlot) -> dict:
    schedule = slot.schedule
    school_class = schedule.school_class if schedule is not None else None
    return {
        "slot_id": slot.id,
        "schedule_id": slot.schedule_id,
        "schedule_name": schedule.name if schedule is not None else "",
        "class_id": schedule.class_id if schedule is not None else "",
        "class_name": school_class.name if school_class is not None else None,
        "timeslot_id": slot.timeslot_id,
        "day": slot.day,
        "start_time": slot.timeslot.start_time,
        "end_time": slot.timeslot.end_time,
    }


def teacher_days(slots: Iterable[ScheduleSlot]) -> set[tuple[str, Weekday]]:
    return {(slot.teacher_id, slot.day) for slot in slots if slot.teacher_id}


def refresh_teacher_conflicts(db: Session, teacher_id: str | None, day: Weekday) -> int:
    """Clear flags on the teacher's slots for ``day`` whose clash no longer exists.

    Flags are only raised on the slot being assigned. This runs after a slot
    is removed, unassigned or moved so the remaining flags stay accurate.
    Returns how many flags were cleared.
    """
    if not teacher_id:
        return 0
    db.flush()
    statement = (
        select(ScheduleSlot)
        .join(ClassTimeslot, ScheduleSlot.timeslot_id == ClassTimeslot.id)
        .join(ClassSchedule, ScheduleSlot.schedule_id == ClassSchedule.id)
        .where(
            ScheduleSlot.teacher_id == teacher_id,
            ScheduleSlot.day == day,
            ScheduleSlot.has_conflict.is_(True),
            ClassTimeslot.deleted_at.is_(None),
            ClassSchedule.deleted_at.is_(None),
        )
    )
    cleared = 0
    for slot in db.execute(statement).scalars():
        if not slot_has_conflict(db, slot, slot.timeslot):
            slot.has_conflict = False
            cleared += 1
    if cleared:
        db.flush()
        logger.info("Cleared %d stale conflict flag(s) for teacher %s on %s", cleared, teacher_id, day.value)
    return cleared

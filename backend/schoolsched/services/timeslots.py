from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from schoolsched.core.exceptions import BadRequestError, ResourceNotFoundError
from schoolsched.models.schedule import ClassSchedule, ScheduleStatus
from schoolsched.models.schedule_slot import ScheduleSlot
from schoolsched.models.timeslot import WEEKDAY_ORDER, ClassTimeslot
from schoolsched.models.user import User
from schoolsched.schemas.timeslot import TimeslotBulkCreate, TimeslotCreate, TimeslotFields, TimeslotUpdate
from schoolsched.services.audit import log_activity
from schoolsched.services.conflicts import refresh_teacher_conflicts, slot_has_conflict, teacher_days
from schoolsched.services.persistence import atomic
from schoolsched.services.references import require_class

logger = logging.getLogger(__name__)

DUPLICATE_RANGE_MESSAGE = "A timeslot with the same time range already exists"
DUPLICATE_BULK_RANGE_MESSAGE = "One or more timeslots with the same time range already exist"


def validate_time_range(start_time: str, end_time: str) -> None:
    if start_time >= end_time:
        raise BadRequestError(
            "Start time must be before end time",
            details={"start_time": start_time, "end_time": end_time},
        )


def sort_timeslots(timeslots: list[ClassTimeslot]) -> list[ClassTimeslot]:
    return sorted(timeslots, key=lambda item: (WEEKDAY_ORDER[item.day], item.start_time, item.end_time))


def _active_schedules(db: Session, class_id: str) -> list[ClassSchedule]:
    statement = select(ClassSchedule).where(
        ClassSchedule.class_id == class_id,
        ClassSchedule.status == ScheduleStatus.active,
        ClassSchedule.deleted_at.is_(None),
    )
    return list(db.execute(statement).scalars())


def _fan_out_to_active_schedules(db: Session, timeslot: ClassTimeslot, *, actor: User) -> int:
    created = 0
    for schedule in _active_schedules(db, timeslot.class_id):
        db.add(
            ScheduleSlot(
                schedule_id=schedule.id,
                timeslot_id=timeslot.id,
                day=timeslot.day,
                type=timeslot.type,
                has_conflict=False,
                created_by_id=actor.id,
            )
        )
        created += 1
    return created


def _build_timeslot(class_id: str, fields: TimeslotFields, *, actor: User) -> ClassTimeslot:
    return ClassTimeslot(
        class_id=class_id,
        day=fields.day,
        start_time=fields.start_time,
        end_time=fields.end_time,
        type=fields.type,
        label=fields.label,
        created_by_id=actor.id,
    )


def create_timeslot(db: Session, payload: TimeslotCreate, *, actor: User) -> tuple[ClassTimeslot, int]:
    """Create a timeslot and bind it into every active schedule of its class.

    Returns the timeslot and the number of schedule slots created for it.
    """
    require_class(db, payload.class_id)
    validate_time_range(payload.start_time, payload.end_time)

    with atomic(db, conflict_message=DUPLICATE_RANGE_MESSAGE):
        timeslot = _build_timeslot(payload.class_id, payload, actor=actor)
        db.add(timeslot)
        db.flush()
        created_slots = _fan_out_to_active_schedules(db, timeslot, actor=actor)
        log_activity(
            db,
            actor=actor,
            action="timeslot.created",
            entity_type="timeslot",
            entity_id=timeslot.id,
            details={"class_id": timeslot.class_id, "created_schedule_slots": created_slots},
        )

    logger.info(
        "Created timeslot %s for class %s with %d schedule slot(s)",
        timeslot.id,
        timeslot.class_id,
        created_slots,
    )
    db.refresh(timeslot)
    return timeslot, created_slots


def bulk_create_timeslots(db: Session, payload: TimeslotBulkCreate, *, actor: User) -> list[ClassTimeslot]:
    require_class(db, payload.class_id)
    for item in payload.timeslots:
        validate_time_range(item.start_time, item.end_time)

    created: list[ClassTimeslot] = []
    created_slots = 0
    with atomic(db, conflict_message=DUPLICATE_BULK_RANGE_MESSAGE):
        for item in payload.timeslots:
            timeslot = _build_timeslot(payload.class_id, item, actor=actor)
            db.add(timeslot)
            db.flush()
            created_slots += _fan_out_to_active_schedules(db, timeslot, actor=actor)
            created.append(timeslot)
        log_activity(
            db,
            actor=actor,
            action="timeslot.bulk_created",
            entity_type="class",
            entity_id=payload.class_id,
            details={"count": len(created), "created_schedule_slots": created_slots},
        )

    logger.info("Bulk created %d timeslot(s) for class %s", len(created), payload.class_id)
    for timeslot in created:
        db.refresh(timeslot)
    return created


def list_timeslots(db: Session, class_id: str) -> list[ClassTimeslot]:
    require_class(db, class_id)
    statement = select(ClassTimeslot).where(
        ClassTimeslot.class_id == class_id,
        ClassTimeslot.deleted_at.is_(None),
    )
    return sort_timeslots(list(db.execute(statement).scalars()))


def get_timeslot(db: Session, timeslot_id: str) -> ClassTimeslot:
    timeslot = db.get(ClassTimeslot, timeslot_id)
    if timeslot is None or timeslot.deleted_at is not None:
        raise ResourceNotFoundError("Timeslot", timeslot_id)
    return timeslot


def _dependent_slots(db: Session, timeslot_id: str) -> list[ScheduleSlot]:
    statement = select(ScheduleSlot).where(ScheduleSlot.timeslot_id == timeslot_id)
    return list(db.execute(statement).scalars())


def update_timeslot(db: Session, timeslot_id: str, payload: TimeslotUpdate, *, actor: User) -> ClassTimeslot:
    timeslot = get_timeslot(db, timeslot_id)
    data = payload.model_dump(exclude_unset=True)
    for key in ("day", "start_time", "end_time", "type"):
        if key in data and data[key] is None:
            data.pop(key)

    day = data.get("day", timeslot.day)
    start_time = data.get("start_time", timeslot.start_time)
    end_time = data.get("end_time", timeslot.end_time)
    if {"day", "start_time", "end_time"} & data.keys():
        validate_time_range(start_time, end_time)

    dependents = _dependent_slots(db, timeslot.id)
    if dependents and day != timeslot.day:
        raise BadRequestError(
            "Cannot change the day of a timeslot that is used in schedules",
            details={"timeslot_id": timeslot.id, "schedule_slots": len(dependents)},
        )

    range_changed = start_time != timeslot.start_time or end_time != timeslot.end_time
    with atomic(db, conflict_message=DUPLICATE_RANGE_MESSAGE):
        for key, value in data.items():
            setattr(timeslot, key, value)
        timeslot.updated_by_id = actor.id
        if "type" in data:
            for slot in dependents:
                slot.type = timeslot.type
        if range_changed:
            db.flush()
            for slot in dependents:
                if slot.teacher_id:
                    slot.has_conflict = slot_has_conflict(db, slot, timeslot)
            for teacher_id, slot_day in teacher_days(dependents):
                refresh_teacher_conflicts(db, teacher_id, slot_day)
        if data:
            log_activity(
                db,
                actor=actor,
                action="timeslot.updated",
                entity_type="timeslot",
                entity_id=timeslot.id,
                details={"fields": sorted(data.keys())},
            )

    db.refresh(timeslot)
    return timeslot


def delete_timeslot(db: Session, timeslot_id: str, *, actor: User) -> int:
    """Soft-delete a timeslot and remove its schedule slots.

    Returns how many schedule slots were removed.
    """
    timeslot = get_timeslot(db, timeslot_id)
    with atomic(db, conflict_message=DUPLICATE_RANGE_MESSAGE):
        affected = teacher_days(_dependent_slots(db, timeslot.id))
        result = db.execute(delete(ScheduleSlot).where(ScheduleSlot.timeslot_id == timeslot.id))
        removed = result.rowcount or 0
        timeslot.deleted_at = datetime.now(timezone.utc)
        timeslot.deleted_by_id = actor.id
        for teacher_id, slot_day in affected:
            refresh_teacher_conflicts(db, teacher_id, slot_day)
        log_activity(
            db,
            actor=actor,
            action="timeslot.deleted",
            entity_type="timeslot",
            entity_id=timeslot.id,
            details={"class_id": timeslot.class_id, "deleted_schedule_slots": removed},
        )

    logger.info("Deleted timeslot %s and %d schedule slot(s)", timeslot_id, removed)
    return removed

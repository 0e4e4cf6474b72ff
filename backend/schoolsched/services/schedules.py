from __future__ import annotations

from datetime import date, datetime, timezone
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from schoolsched.core.exceptions import BadRequestError
from schoolsched.models.schedule import ClassSchedule, ScheduleStatus
from schoolsched.models.schedule_slot import ScheduleSlot
from schoolsched.models.timeslot import WEEKDAY_ORDER, ClassTimeslot
from schoolsched.models.user import User
from schoolsched.schemas.schedule import ScheduleCreate, ScheduleUpdate
from schoolsched.services.audit import log_activity
from schoolsched.services.conflicts import refresh_teacher_conflicts, teacher_days
from schoolsched.services.persistence import atomic
from schoolsched.services.references import require_class, require_schedule

logger = logging.getLogger(__name__)

ACTIVE_SCHEDULE_EXISTS_MESSAGE = "This class already has an active schedule"


def validate_schedule_dates(start_date: date, end_date: date, effective_from: date) -> None:
    if start_date > end_date:
        raise BadRequestError("Start date must be before end date")
    if effective_from < start_date or effective_from > end_date:
        raise BadRequestError("Effective date must be within start and end dates")


def _create_slots_for_existing_timeslots(db: Session, schedule: ClassSchedule, *, actor: User) -> int:
    statement = select(ClassTimeslot).where(
        ClassTimeslot.class_id == schedule.class_id,
        ClassTimeslot.deleted_at.is_(None),
    )
    created = 0
    for timeslot in db.execute(statement).scalars():
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


def create_schedule(db: Session, payload: ScheduleCreate, *, actor: User) -> tuple[ClassSchedule, int]:
    """Create an inactive schedule pre-filled with one slot per class timeslot."""
    require_class(db, payload.class_id)
    validate_schedule_dates(payload.start_date, payload.end_date, payload.effective_from)

    with atomic(db, conflict_message=ACTIVE_SCHEDULE_EXISTS_MESSAGE):
        schedule = ClassSchedule(
            **payload.model_dump(),
            status=ScheduleStatus.inactive,
            created_by_id=actor.id,
        )
        db.add(schedule)
        db.flush()
        created_slots = _create_slots_for_existing_timeslots(db, schedule, actor=actor)
        log_activity(
            db,
            actor=actor,
            action="schedule.created",
            entity_type="schedule",
            entity_id=schedule.id,
            details={"class_id": schedule.class_id, "created_schedule_slots": created_slots},
        )

    logger.info(
        "Created schedule %s for class %s with %d slot(s)",
        schedule.id,
        schedule.class_id,
        created_slots,
    )
    db.refresh(schedule)
    return schedule, created_slots


def get_active_schedule(db: Session, class_id: str) -> ClassSchedule | None:
    statement = select(ClassSchedule).where(
        ClassSchedule.class_id == class_id,
        ClassSchedule.status == ScheduleStatus.active,
        ClassSchedule.deleted_at.is_(None),
    )
    return db.execute(statement).scalars().first()


def ensure_default_schedule(
    db: Session,
    class_id: str,
    *,
    actor: User,
    today: date | None = None,
) -> ClassSchedule:
    """Return the class's active schedule, creating a calendar-year default if needed.

    The default is activated straight away when the class already has
    timeslots; otherwise it stays inactive until slots exist.
    """
    require_class(db, class_id)
    existing = get_active_schedule(db, class_id)
    if existing is not None:
        return existing

    today = today or date.today()
    payload = ScheduleCreate(
        class_id=class_id,
        name=f"Default Schedule {today.year}",
        academic_year=str(today.year),
        start_date=date(today.year, 1, 1),
        end_date=date(today.year, 12, 31),
        effective_from=today,
    )
    schedule, created_slots = create_schedule(db, payload, actor=actor)
    if created_slots:
        schedule = activate_schedule(db, schedule.id, actor=actor)
    return schedule


def list_schedules(db: Session, class_id: str) -> list[ClassSchedule]:
    require_class(db, class_id)
    statement = select(ClassSchedule).where(
        ClassSchedule.class_id == class_id,
        ClassSchedule.deleted_at.is_(None),
    )
    schedules = list(db.execute(statement).scalars())
    schedules.sort(key=lambda item: item.effective_from, reverse=True)
    schedules.sort(key=lambda item: item.status != ScheduleStatus.active)
    return schedules


def get_schedule(db: Session, schedule_id: str) -> ClassSchedule:
    return require_schedule(db, schedule_id)


def list_schedule_slots(db: Session, schedule_id: str) -> list[ScheduleSlot]:
    require_schedule(db, schedule_id)
    statement = (
        select(ScheduleSlot)
        .join(ClassTimeslot, ScheduleSlot.timeslot_id == ClassTimeslot.id)
        .where(ScheduleSlot.schedule_id == schedule_id)
    )
    slots = list(db.execute(statement).scalars())
    return sorted(slots, key=lambda slot: (WEEKDAY_ORDER[slot.day], slot.timeslot.start_time))


def count_schedule_slots(db: Session, schedule_id: str, *, conflicted_only: bool = False) -> int:
    statement = select(func.count(ScheduleSlot.id)).where(ScheduleSlot.schedule_id == schedule_id)
    if conflicted_only:
        statement = statement.where(ScheduleSlot.has_conflict.is_(True))
    return db.execute(statement).scalar_one()


def update_schedule(db: Session, schedule_id: str, payload: ScheduleUpdate, *, actor: User) -> ClassSchedule:
    schedule = require_schedule(db, schedule_id)
    data = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}

    if {"start_date", "end_date", "effective_from"} & data.keys():
        validate_schedule_dates(
            data.get("start_date", schedule.start_date),
            data.get("end_date", schedule.end_date),
            data.get("effective_from", schedule.effective_from),
        )

    with atomic(db, conflict_message=ACTIVE_SCHEDULE_EXISTS_MESSAGE):
        for key, value in data.items():
            setattr(schedule, key, value)
        schedule.updated_by_id = actor.id
        if data:
            log_activity(
                db,
                actor=actor,
                action="schedule.updated",
                entity_type="schedule",
                entity_id=schedule.id,
                details={"fields": sorted(data.keys())},
            )

    db.refresh(schedule)
    return schedule


def delete_schedule(db: Session, schedule_id: str, *, actor: User) -> int:
    """Soft-delete an inactive schedule and remove its slots.

    Returns how many slots were removed.
    """
    schedule = require_schedule(db, schedule_id)
    if schedule.status == ScheduleStatus.active:
        raise BadRequestError(
            "Cannot delete an active schedule. Activate another schedule for this class first."
        )

    with atomic(db, conflict_message=ACTIVE_SCHEDULE_EXISTS_MESSAGE):
        affected = teacher_days(list_schedule_slots(db, schedule.id))
        result = db.execute(delete(ScheduleSlot).where(ScheduleSlot.schedule_id == schedule.id))
        removed = result.rowcount or 0
        schedule.deleted_at = datetime.now(timezone.utc)
        schedule.deleted_by_id = actor.id
        for teacher_id, slot_day in affected:
            refresh_teacher_conflicts(db, teacher_id, slot_day)
        log_activity(
            db,
            actor=actor,
            action="schedule.deleted",
            entity_type="schedule",
            entity_id=schedule.id,
            details={"class_id": schedule.class_id, "deleted_schedule_slots": removed},
        )

    logger.info("Deleted schedule %s and %d slot(s)", schedule_id, removed)
    return removed


def activate_schedule(db: Session, schedule_id: str, *, actor: User) -> ClassSchedule:
    schedule = require_schedule(db, schedule_id)

    if count_schedule_slots(db, schedule.id) == 0:
        raise BadRequestError("Cannot activate an empty schedule. Add slots first.")

    conflict_count = count_schedule_slots(db, schedule.id, conflicted_only=True)
    if conflict_count:
        logger.warning("Refusing to activate schedule %s with %d conflict(s)", schedule.id, conflict_count)
        raise BadRequestError(
            f"Schedule has {conflict_count} teacher conflicts. Please resolve them before activating.",
            details={"conflict_count": conflict_count},
        )

    if schedule.status == ScheduleStatus.active:
        return schedule

    with atomic(db, conflict_message=ACTIVE_SCHEDULE_EXISTS_MESSAGE):
        deactivated = db.execute(
            update(ClassSchedule)
            .where(
                ClassSchedule.class_id == schedule.class_id,
                ClassSchedule.status == ScheduleStatus.active,
                ClassSchedule.id != schedule.id,
            )
            .values(status=ScheduleStatus.inactive, updated_by_id=actor.id)
        ).rowcount
        schedule.status = ScheduleStatus.active
        schedule.updated_by_id = actor.id
        log_activity(
            db,
            actor=actor,
            action="schedule.activated",
            entity_type="schedule",
            entity_id=schedule.id,
            details={"class_id": schedule.class_id, "deactivated_schedules": deactivated or 0},
        )

    logger.info("Activated schedule %s for class %s", schedule.id, schedule.class_id)
    db.refresh(schedule)
    return schedule

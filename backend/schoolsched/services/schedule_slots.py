from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from schoolsched.core.exceptions import BadRequestError, ResourceNotFoundError
from schoolsched.models.schedule import ClassSchedule
from schoolsched.models.schedule_slot import ScheduleSlot
from schoolsched.models.timeslot import ClassTimeslot
from schoolsched.models.user import User
from schoolsched.schemas.schedule import ScheduleSlotCreate, ScheduleSlotUpdate
from schoolsched.services.audit import log_activity
from schoolsched.services.conflicts import refresh_teacher_conflicts, slot_has_conflict
from schoolsched.services.persistence import atomic
from schoolsched.services.references import (
    require_room,
    require_schedule,
    require_subject,
    require_teacher,
    require_timeslot,
)

logger = logging.getLogger(__name__)

DUPLICATE_SLOT_MESSAGE = "A schedule slot for this timeslot already exists"


def get_schedule_slot(db: Session, slot_id: str) -> ScheduleSlot:
    slot = db.get(ScheduleSlot, slot_id)
    if slot is None:
        raise ResourceNotFoundError("Schedule slot", slot_id)
    return slot


def ensure_timeslot_fits_schedule(schedule: ClassSchedule, timeslot: ClassTimeslot, day) -> None:
    if timeslot.class_id != schedule.class_id:
        raise BadRequestError(
            "Timeslot belongs to a different class than the schedule",
            details={"timeslot_id": timeslot.id, "schedule_id": schedule.id},
        )
    if day != timeslot.day:
        raise BadRequestError(
            f"Day mismatch: Timeslot is for {timeslot.day.value}, but slot is for {day.value}",
            details={"timeslot_day": timeslot.day.value, "slot_day": day.value},
        )


def _check_assignment_references(
    db: Session,
    *,
    subject_id: str | None,
    teacher_id: str | None,
    room_id: str | None,
) -> None:
    if subject_id:
        require_subject(db, subject_id)
    if teacher_id:
        require_teacher(db, teacher_id)
    if room_id:
        require_room(db, room_id)


def stage_schedule_slot(
    db: Session,
    schedule: ClassSchedule,
    *,
    timeslot_id: str,
    day=None,
    slot_type=None,
    subject_id: str | None = None,
    teacher_id: str | None = None,
    room_id: str | None = None,
    actor: User,
) -> ScheduleSlot:
    """Validate and add a new slot to the session without committing."""
    timeslot = require_timeslot(db, timeslot_id)
    ensure_timeslot_fits_schedule(schedule, timeslot, day if day is not None else timeslot.day)
    _check_assignment_references(db, subject_id=subject_id, teacher_id=teacher_id, room_id=room_id)

    slot = ScheduleSlot(
        schedule_id=schedule.id,
        timeslot_id=timeslot.id,
        day=timeslot.day,
        type=slot_type or timeslot.type,
        subject_id=subject_id,
        teacher_id=teacher_id,
        room_id=room_id,
        created_by_id=actor.id,
    )
    slot.has_conflict = slot_has_conflict(db, slot, timeslot)
    if slot.has_conflict:
        logger.warning(
            "Teacher %s double-booked on %s %s-%s",
            teacher_id,
            timeslot.day.value,
            timeslot.start_time,
            timeslot.end_time,
        )
    db.add(slot)
    db.flush()
    return slot


def stage_slot_changes(db: Session, slot: ScheduleSlot, data: dict, *, actor: User) -> ScheduleSlot:
    """Apply field changes to an existing slot without committing.

    The teacher conflict flag is recomputed whenever the teacher or the
    timeslot changes; clearing the teacher clears the flag. Flags left on
    the previous teacher's other slots that day are cleared once stale.
    """
    previous_teacher_id, previous_day = slot.teacher_id, slot.day
    timeslot = slot.timeslot
    if data.get("timeslot_id") is not None:
        timeslot = require_timeslot(db, data["timeslot_id"])
    day = data.get("day") or (timeslot.day if "timeslot_id" in data else slot.day)
    if data.get("timeslot_id") is not None or data.get("day") is not None:
        schedule = require_schedule(db, slot.schedule_id)
        ensure_timeslot_fits_schedule(schedule, timeslot, day)

    _check_assignment_references(
        db,
        subject_id=data.get("subject_id"),
        teacher_id=data.get("teacher_id"),
        room_id=data.get("room_id"),
    )

    for key in ("timeslot_id", "day", "type"):
        if data.get(key) is not None:
            setattr(slot, key, data[key])
    for key in ("subject_id", "teacher_id", "room_id"):
        if key in data:
            setattr(slot, key, data[key])
    slot.day = timeslot.day
    slot.updated_by_id = actor.id

    db.flush()
    if {"teacher_id", "timeslot_id"} & data.keys():
        slot.has_conflict = slot_has_conflict(db, slot, timeslot)
        # The slot it used to clash with may now be clear.
        refresh_teacher_conflicts(db, previous_teacher_id, previous_day)
    return slot


def create_schedule_slot(db: Session, payload: ScheduleSlotCreate, *, actor: User) -> ScheduleSlot:
    schedule = require_schedule(db, payload.schedule_id)
    with atomic(db, conflict_message=DUPLICATE_SLOT_MESSAGE):
        slot = stage_schedule_slot(
            db,
            schedule,
            timeslot_id=payload.timeslot_id,
            day=payload.day,
            slot_type=payload.type,
            subject_id=payload.subject_id,
            teacher_id=payload.teacher_id,
            room_id=payload.room_id,
            actor=actor,
        )
        log_activity(
            db,
            actor=actor,
            action="schedule_slot.created",
            entity_type="schedule_slot",
            entity_id=slot.id,
            details={"schedule_id": schedule.id, "has_conflict": slot.has_conflict},
        )

    db.refresh(slot)
    return slot


def update_schedule_slot(db: Session, slot_id: str, payload: ScheduleSlotUpdate, *, actor: User) -> ScheduleSlot:
    slot = get_schedule_slot(db, slot_id)
    data = payload.model_dump(exclude_unset=True)
    with atomic(db, conflict_message=DUPLICATE_SLOT_MESSAGE):
        stage_slot_changes(db, slot, data, actor=actor)
        log_activity(
            db,
            actor=actor,
            action="schedule_slot.updated",
            entity_type="schedule_slot",
            entity_id=slot.id,
            details={"fields": sorted(data.keys()), "has_conflict": slot.has_conflict},
        )

    db.refresh(slot)
    return slot


def delete_schedule_slot(db: Session, slot_id: str, *, actor: User) -> None:
    slot = get_schedule_slot(db, slot_id)
    teacher_id, day = slot.teacher_id, slot.day
    with atomic(db, conflict_message=DUPLICATE_SLOT_MESSAGE):
        log_activity(
            db,
            actor=actor,
            action="schedule_slot.deleted",
            entity_type="schedule_slot",
            entity_id=slot.id,
            details={"schedule_id": slot.schedule_id, "timeslot_id": slot.timeslot_id},
        )
        db.delete(slot)
        db.flush()
        refresh_teacher_conflicts(db, teacher_id, day)

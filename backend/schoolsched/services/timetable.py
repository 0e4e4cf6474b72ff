"""Whole-timetable views and editing built on top of schedule slots."""
from __future__ import annotations

import csv
from datetime import date
import io
import logging
import re

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolsched.core.exceptions import BadRequestError, NotFoundError
from schoolsched.models.schedule import ClassSchedule, ScheduleStatus
from schoolsched.models.schedule_slot import ScheduleSlot
from schoolsched.models.school_class import SchoolClass
from schoolsched.models.timeslot import TimeslotType
from schoolsched.models.user import User
from schoolsched.schemas.schedule import ScheduleSlotOut
from schoolsched.schemas.timetable import (
    AssignSubjectRequest,
    AssignTeacherRequest,
    BulkTimetableRequest,
    ExportFormat,
    TimetableValidateRequest,
    TimetableValidationOut,
)
from schoolsched.services.audit import log_activity
from schoolsched.services.conflicts import refresh_teacher_conflicts, slot_has_conflict
from schoolsched.services.persistence import atomic
from schoolsched.services.references import (
    require_class,
    require_schedule,
    require_subject,
    require_teacher,
    require_timeslot,
)
from schoolsched.services.schedule_slots import (
    DUPLICATE_SLOT_MESSAGE,
    ensure_timeslot_fits_schedule,
    get_schedule_slot,
    stage_schedule_slot,
    stage_slot_changes,
)
from schoolsched.services.schedules import get_active_schedule, list_schedule_slots

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "class",
    "section",
    "schedule",
    "day",
    "start_time",
    "end_time",
    "type",
    "subject_code",
    "subject",
    "teacher",
    "room",
]


def resolve_schedule(db: Session, class_id: str, schedule_id: str | None = None) -> ClassSchedule:
    require_class(db, class_id)
    if schedule_id:
        schedule = require_schedule(db, schedule_id)
        if schedule.class_id != class_id:
            raise BadRequestError("Schedule does not belong to this class")
        return schedule
    schedule = get_active_schedule(db, class_id)
    if schedule is None:
        raise NotFoundError(f"No active schedule found for class {class_id}")
    return schedule


def get_timetable(
    db: Session,
    *,
    class_id: str,
    schedule_id: str | None = None,
    include_conflicts: bool = True,
) -> list[ScheduleSlotOut]:
    """Return the slots of a class timetable.

    Slots whose day drifted from their timeslot are corrected in place. With
    ``include_conflicts`` the conflict flags are re-evaluated live; those
    values are reported, not stored.
    """
    schedule = resolve_schedule(db, class_id, schedule_id)
    slots = list_schedule_slots(db, schedule.id)

    drifted = [slot for slot in slots if slot.day != slot.timeslot.day]
    if drifted:
        for slot in drifted:
            slot.day = slot.timeslot.day
        db.commit()
        logger.info("Re-synced day on %d slot(s) of schedule %s", len(drifted), schedule.id)

    result: list[ScheduleSlotOut] = []
    for slot in slots:
        item = ScheduleSlotOut.model_validate(slot)
        if include_conflicts and slot.teacher_id:
            item = item.model_copy(update={"has_conflict": slot_has_conflict(db, slot, slot.timeslot)})
        result.append(item)
    return result


def assign_subject(db: Session, payload: AssignSubjectRequest, *, actor: User) -> ScheduleSlot:
    """Put a subject into a timeslot, creating the slot if it does not exist.

    Changing the subject drops the previously assigned teacher.
    """
    schedule = require_schedule(db, payload.schedule_id)
    timeslot = require_timeslot(db, payload.timeslot_id)
    require_subject(db, payload.subject_id)
    ensure_timeslot_fits_schedule(schedule, timeslot, timeslot.day)

    existing = db.execute(
        select(ScheduleSlot).where(
            ScheduleSlot.schedule_id == schedule.id,
            ScheduleSlot.timeslot_id == timeslot.id,
        )
    ).scalar_one_or_none()

    with atomic(db, conflict_message=DUPLICATE_SLOT_MESSAGE):
        if existing is not None:
            slot = existing
            previous_teacher_id, previous_day = slot.teacher_id, slot.day
            slot.subject_id = payload.subject_id
            slot.teacher_id = None
            slot.has_conflict = False
            slot.day = timeslot.day
            slot.updated_by_id = actor.id
        else:
            slot = ScheduleSlot(
                schedule_id=schedule.id,
                timeslot_id=timeslot.id,
                day=timeslot.day,
                type=timeslot.type,
                subject_id=payload.subject_id,
                has_conflict=False,
                created_by_id=actor.id,
            )
            db.add(slot)
        db.flush()
        if existing is not None:
            refresh_teacher_conflicts(db, previous_teacher_id, previous_day)
        log_activity(
            db,
            actor=actor,
            action="timetable.subject_assigned",
            entity_type="schedule_slot",
            entity_id=slot.id,
            details={"subject_id": payload.subject_id},
        )

    db.refresh(slot)
    return slot


def assign_teacher(db: Session, payload: AssignTeacherRequest, *, actor: User) -> ScheduleSlot:
    """Assign a teacher to a slot. A clashing assignment is kept and flagged."""
    slot = get_schedule_slot(db, payload.slot_id)
    require_teacher(db, payload.teacher_id)

    previous_teacher_id = slot.teacher_id
    with atomic(db, conflict_message=DUPLICATE_SLOT_MESSAGE):
        slot.teacher_id = payload.teacher_id
        slot.has_conflict = slot_has_conflict(db, slot, slot.timeslot)
        slot.updated_by_id = actor.id
        if previous_teacher_id != payload.teacher_id:
            refresh_teacher_conflicts(db, previous_teacher_id, slot.day)
        log_activity(
            db,
            actor=actor,
            action="timetable.teacher_assigned",
            entity_type="schedule_slot",
            entity_id=slot.id,
            details={"teacher_id": payload.teacher_id, "has_conflict": slot.has_conflict},
        )

    db.refresh(slot)
    return slot


def clear_slot_assignment(db: Session, slot_id: str, *, actor: User) -> ScheduleSlot:
    slot = get_schedule_slot(db, slot_id)
    previous_teacher_id = slot.teacher_id
    with atomic(db, conflict_message=DUPLICATE_SLOT_MESSAGE):
        slot.subject_id = None
        slot.teacher_id = None
        slot.room_id = None
        slot.has_conflict = False
        slot.updated_by_id = actor.id
        refresh_teacher_conflicts(db, previous_teacher_id, slot.day)
        log_activity(
            db,
            actor=actor,
            action="timetable.assignment_cleared",
            entity_type="schedule_slot",
            entity_id=slot.id,
        )

    db.refresh(slot)
    return slot


def bulk_operations(db: Session, payload: BulkTimetableRequest, *, actor: User) -> list[ScheduleSlot]:
    """Apply create/update/delete operations in order, all or nothing."""
    schedule = require_schedule(db, payload.schedule_id)
    processed: list[ScheduleSlot] = []

    with atomic(db, conflict_message=DUPLICATE_SLOT_MESSAGE):
        for index, operation in enumerate(payload.operations):
            slot_data = operation.slot_data
            if operation.action == "create":
                slot = stage_schedule_slot(
                    db,
                    schedule,
                    timeslot_id=slot_data.timeslot_id,
                    day=slot_data.day,
                    slot_type=slot_data.type,
                    subject_id=slot_data.subject_id,
                    teacher_id=slot_data.teacher_id,
                    room_id=slot_data.room_id,
                    actor=actor,
                )
                processed.append(slot)
                continue

            if not slot_data.id:
                raise BadRequestError(
                    f"Slot ID required for {operation.action} operation",
                    details={"operation_index": index},
                )
            slot = get_schedule_slot(db, slot_data.id)
            if slot.schedule_id != schedule.id:
                raise BadRequestError(
                    "Slot does not belong to this schedule",
                    details={"operation_index": index, "slot_id": slot.id},
                )

            if operation.action == "update":
                changes = slot_data.model_dump(exclude_unset=True, exclude={"id"})
                processed.append(stage_slot_changes(db, slot, changes, actor=actor))
            else:
                processed = [item for item in processed if item is not slot]
                teacher_id, day = slot.teacher_id, slot.day
                db.delete(slot)
                db.flush()
                refresh_teacher_conflicts(db, teacher_id, day)

        log_activity(
            db,
            actor=actor,
            action="timetable.bulk_operations",
            entity_type="schedule",
            entity_id=schedule.id,
            details={"operations": len(payload.operations)},
        )

    logger.info("Applied %d timetable operation(s) to schedule %s", len(payload.operations), schedule.id)
    for slot in processed:
        db.refresh(slot)
    return processed


def validate_timetable(db: Session, payload: TimetableValidateRequest) -> TimetableValidationOut:
    slots = list_schedule_slots(db, payload.schedule_id)
    errors: list[str] = []
    warnings: list[str] = []

    if payload.check_conflicts:
        for slot in slots:
            if not slot.teacher_id:
                continue
            if slot_has_conflict(db, slot, slot.timeslot):
                teacher_name = slot.teacher.full_name if slot.teacher is not None else slot.teacher_id
                errors.append(
                    f"Teacher conflict found for {teacher_name} on {slot.day.value.title()} "
                    f"at {slot.timeslot.start_time}-{slot.timeslot.end_time}"
                )

    if payload.check_completeness:
        regular = [slot for slot in slots if slot.type == TimeslotType.regular]
        without_teacher = [slot for slot in regular if slot.subject_id and not slot.teacher_id]
        if without_teacher:
            warnings.append(f"Found {len(without_teacher)} subjects without assigned teachers")
        empty = [slot for slot in regular if not slot.subject_id]
        if empty:
            warnings.append(f"Found {len(empty)} empty regular timeslots")

    return TimetableValidationOut(valid=not errors, errors=errors, warnings=warnings)


def _export_file_token(school_class: SchoolClass | None) -> str:
    if school_class is None:
        return "all_classes"
    tokens: list[str] = []
    if school_class.grade is not None:
        tokens.append(f"Grade{school_class.grade}")
    if school_class.section:
        tokens.append(f"Sec{school_class.section}")
    tokens.append(re.sub(r"\s+", "_", school_class.name.strip()))
    return "_".join(tokens)


def _export_rows(db: Session, class_id: str | None) -> tuple[SchoolClass | None, list[list[str]]]:
    school_class = require_class(db, class_id) if class_id else None
    statement = select(ClassSchedule).where(
        ClassSchedule.status == ScheduleStatus.active,
        ClassSchedule.deleted_at.is_(None),
    )
    if class_id:
        statement = statement.where(ClassSchedule.class_id == class_id)
    schedules = list(db.execute(statement).scalars())
    if class_id and not schedules:
        raise NotFoundError(f"No active schedule found for class {class_id}")

    rows: list[list[str]] = []
    for schedule in sorted(schedules, key=lambda item: (item.school_class.name, item.school_class.section or "")):
        for slot in list_schedule_slots(db, schedule.id):
            rows.append(
                [
                    schedule.school_class.name,
                    schedule.school_class.section or "",
                    schedule.name,
                    slot.day.value,
                    slot.timeslot.start_time,
                    slot.timeslot.end_time,
                    slot.type.value,
                    slot.subject.code if slot.subject is not None else "",
                    slot.subject.name if slot.subject is not None else "",
                    slot.teacher.full_name if slot.teacher is not None else "",
                    slot.room.room_no if slot.room is not None else "",
                ]
            )
    return school_class, rows


def _render_csv(rows: list[list[str]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def _render_xlsx(rows: list[list[str]]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Timetable"
    sheet.append(EXPORT_COLUMNS)
    for cell in sheet[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    for row in rows:
        sheet.append(row)
    sheet.freeze_panes = "A2"

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


EXPORT_RENDERERS = {
    ExportFormat.csv: (_render_csv, "text/csv"),
    ExportFormat.xlsx: (_render_xlsx, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
}


def export_timetable(
    db: Session,
    *,
    class_id: str | None = None,
    file_format: ExportFormat = ExportFormat.csv,
) -> tuple[str, bytes, str]:
    """Render active timetables, one row per slot.

    Returns ``(filename, content, media_type)``. Without ``class_id`` every
    class with an active schedule is included.
    """
    school_class, rows = _export_rows(db, class_id)
    render, media_type = EXPORT_RENDERERS[file_format]
    filename = f"timetable_{_export_file_token(school_class)}_{date.today().isoformat()}.{file_format.value}"
    logger.info("Exported %d timetable row(s) as %s", len(rows), file_format.value)
    return filename, render(rows), media_type

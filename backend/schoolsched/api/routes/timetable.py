from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from schoolsched.api.deps import get_current_user, get_db, require_timetable_editor
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
from schoolsched.services import timetable as timetable_service

router = APIRouter()


@router.get("", response_model=list[ScheduleSlotOut])
def get_timetable(
    class_id: str = Query(min_length=1),
    schedule_id: str | None = None,
    include_conflicts: bool = True,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ScheduleSlotOut]:
    return timetable_service.get_timetable(
        db,
        class_id=class_id,
        schedule_id=schedule_id,
        include_conflicts=include_conflicts,
    )


@router.post("/assign-subject", response_model=ScheduleSlotOut)
def assign_subject(
    payload: AssignSubjectRequest,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return timetable_service.assign_subject(db, payload, actor=current_user)


@router.post("/assign-teacher", response_model=ScheduleSlotOut)
def assign_teacher(
    payload: AssignTeacherRequest,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return timetable_service.assign_teacher(db, payload, actor=current_user)


@router.delete("/slots/{slot_id}/assignment", response_model=ScheduleSlotOut)
def clear_slot_assignment(
    slot_id: str,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return timetable_service.clear_slot_assignment(db, slot_id, actor=current_user)


@router.post("/bulk", response_model=list[ScheduleSlotOut])
def bulk_timetable_operations(
    payload: BulkTimetableRequest,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> list[ScheduleSlotOut]:
    return timetable_service.bulk_operations(db, payload, actor=current_user)


@router.post("/validate", response_model=TimetableValidationOut)
def validate_timetable(
    payload: TimetableValidateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimetableValidationOut:
    return timetable_service.validate_timetable(db, payload)


@router.get("/export")
def export_timetable(
    class_id: str | None = None,
    file_format: ExportFormat = Query(default=ExportFormat.csv, alias="format"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    filename, content, media_type = timetable_service.export_timetable(
        db, class_id=class_id, file_format=file_format
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

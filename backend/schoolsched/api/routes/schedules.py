from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from schoolsched.api.deps import get_current_user, get_db, require_timetable_editor
from schoolsched.models.user import User
from schoolsched.schemas.common import ActionResult
from schoolsched.schemas.schedule import (
    ConflictingSlotOut,
    DefaultScheduleRequest,
    ScheduleCreate,
    ScheduleCreateOut,
    ScheduleDeleteOut,
    ScheduleDetailOut,
    ScheduleOut,
    ScheduleSlotCreate,
    ScheduleSlotOut,
    ScheduleSlotUpdate,
    ScheduleUpdate,
    TeacherConflictCheck,
    TeacherConflictOut,
)
from schoolsched.services import schedule_slots as slot_service
from schoolsched.services import schedules as schedule_service
from schoolsched.services.conflicts import check_teacher_conflict, describe_conflicting_slot

router = APIRouter()


@router.post("", response_model=ScheduleCreateOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: ScheduleCreate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleCreateOut:
    schedule, created_slots = schedule_service.create_schedule(db, payload, actor=current_user)
    return ScheduleCreateOut(
        **ScheduleOut.model_validate(schedule).model_dump(),
        created_schedule_slots=created_slots,
    )


@router.get("", response_model=list[ScheduleOut])
def list_schedules(
    class_id: str = Query(min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ScheduleOut]:
    return schedule_service.list_schedules(db, class_id)


@router.post("/default", response_model=ScheduleOut)
def ensure_default_schedule(
    payload: DefaultScheduleRequest,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleOut:
    return schedule_service.ensure_default_schedule(db, payload.class_id, actor=current_user)


@router.post("/check-teacher-conflict", response_model=TeacherConflictOut)
def check_teacher_conflict_endpoint(
    payload: TeacherConflictCheck,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeacherConflictOut:
    result = check_teacher_conflict(
        db,
        teacher_id=payload.teacher_id,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        exclude_slot_id=payload.exclude_slot_id,
    )
    return TeacherConflictOut(
        has_conflict=result.has_conflict,
        conflicting_slots=[
            ConflictingSlotOut(**describe_conflicting_slot(slot)) for slot in result.conflicting_slots
        ]
        or None,
    )


@router.post("/slots", response_model=ScheduleSlotOut, status_code=status.HTTP_201_CREATED)
def create_schedule_slot(
    payload: ScheduleSlotCreate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return slot_service.create_schedule_slot(db, payload, actor=current_user)


@router.get("/slots", response_model=list[ScheduleSlotOut])
def list_schedule_slots(
    schedule_id: str = Query(min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ScheduleSlotOut]:
    return schedule_service.list_schedule_slots(db, schedule_id)


@router.get("/slots/{slot_id}", response_model=ScheduleSlotOut)
def get_schedule_slot(
    slot_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return slot_service.get_schedule_slot(db, slot_id)


@router.put("/slots/{slot_id}", response_model=ScheduleSlotOut)
def update_schedule_slot(
    slot_id: str,
    payload: ScheduleSlotUpdate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return slot_service.update_schedule_slot(db, slot_id, payload, actor=current_user)


@router.delete("/slots/{slot_id}", response_model=ActionResult)
def delete_schedule_slot(
    slot_id: str,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ActionResult:
    slot_service.delete_schedule_slot(db, slot_id, actor=current_user)
    return ActionResult(success=True, message="Schedule slot deleted successfully")


@router.get("/{schedule_id}", response_model=ScheduleDetailOut)
def get_schedule(
    schedule_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ScheduleDetailOut:
    schedule = schedule_service.get_schedule(db, schedule_id)
    slots = schedule_service.list_schedule_slots(db, schedule_id)
    return ScheduleDetailOut(
        **ScheduleOut.model_validate(schedule).model_dump(),
        slots=[ScheduleSlotOut.model_validate(slot) for slot in slots],
    )


@router.put("/{schedule_id}", response_model=ScheduleOut)
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleOut:
    return schedule_service.update_schedule(db, schedule_id, payload, actor=current_user)


@router.delete("/{schedule_id}", response_model=ScheduleDeleteOut)
def delete_schedule(
    schedule_id: str,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleDeleteOut:
    removed = schedule_service.delete_schedule(db, schedule_id, actor=current_user)
    return ScheduleDeleteOut(
        success=True,
        message="Schedule deleted successfully",
        deleted_schedule_slots=removed,
    )


@router.post("/{schedule_id}/activate", response_model=ScheduleOut)
def activate_schedule(
    schedule_id: str,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> ScheduleOut:
    return schedule_service.activate_schedule(db, schedule_id, actor=current_user)

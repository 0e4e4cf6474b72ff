from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from schoolsched.api.deps import get_current_user, get_db, require_timetable_editor
from schoolsched.models.user import User
from schoolsched.schemas.timeslot import (
    TimeslotBulkCreate,
    TimeslotBulkOut,
    TimeslotCreate,
    TimeslotCreateOut,
    TimeslotDeleteOut,
    TimeslotOut,
    TimeslotUpdate,
)
from schoolsched.services import timeslots as timeslot_service

router = APIRouter()


@router.post("", response_model=TimeslotCreateOut, status_code=status.HTTP_201_CREATED)
def create_timeslot(
    payload: TimeslotCreate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> TimeslotCreateOut:
    timeslot, created_slots = timeslot_service.create_timeslot(db, payload, actor=current_user)
    return TimeslotCreateOut(
        **TimeslotOut.model_validate(timeslot).model_dump(),
        created_schedule_slots=created_slots,
    )


@router.post("/bulk", response_model=TimeslotBulkOut, status_code=status.HTTP_201_CREATED)
def bulk_create_timeslots(
    payload: TimeslotBulkCreate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> TimeslotBulkOut:
    created = timeslot_service.bulk_create_timeslots(db, payload, actor=current_user)
    return TimeslotBulkOut(count=len(created), timeslots=[TimeslotOut.model_validate(item) for item in created])


@router.get("", response_model=list[TimeslotOut])
def list_timeslots(
    class_id: str = Query(min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimeslotOut]:
    return timeslot_service.list_timeslots(db, class_id)


@router.get("/{timeslot_id}", response_model=TimeslotOut)
def get_timeslot(
    timeslot_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimeslotOut:
    return timeslot_service.get_timeslot(db, timeslot_id)


@router.put("/{timeslot_id}", response_model=TimeslotOut)
def update_timeslot(
    timeslot_id: str,
    payload: TimeslotUpdate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> TimeslotOut:
    return timeslot_service.update_timeslot(db, timeslot_id, payload, actor=current_user)


@router.delete("/{timeslot_id}", response_model=TimeslotDeleteOut)
def delete_timeslot(
    timeslot_id: str,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> TimeslotDeleteOut:
    removed = timeslot_service.delete_timeslot(db, timeslot_id, actor=current_user)
    return TimeslotDeleteOut(
        success=True,
        message="Timeslot deleted successfully",
        deleted_schedule_slots=removed,
    )

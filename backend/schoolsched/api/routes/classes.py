from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolsched.api.deps import get_current_user, get_db, require_timetable_editor
from schoolsched.models.school_class import SchoolClass
from schoolsched.models.user import User
from schoolsched.schemas.school_class import SchoolClassCreate, SchoolClassOut
from schoolsched.services.audit import log_activity

router = APIRouter()


@router.get("", response_model=list[SchoolClassOut])
def list_classes(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[SchoolClassOut]:
    statement = select(SchoolClass).order_by(SchoolClass.academic_year, SchoolClass.name, SchoolClass.section)
    return list(db.execute(statement).scalars())


@router.post("", response_model=SchoolClassOut, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: SchoolClassCreate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> SchoolClassOut:
    school_class = SchoolClass(**payload.model_dump(), created_by_id=current_user.id)
    db.add(school_class)
    try:
        db.flush()
        log_activity(db, actor=current_user, action="class.created", entity_type="class", entity_id=school_class.id)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Class already exists") from exc
    db.refresh(school_class)
    return school_class


@router.get("/{class_id}", response_model=SchoolClassOut)
def get_class(
    class_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SchoolClassOut:
    school_class = db.get(SchoolClass, class_id)
    if school_class is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return school_class

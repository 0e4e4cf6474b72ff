from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from schoolsched.api.deps import get_current_user, get_db, require_timetable_editor
from schoolsched.models.teacher import Teacher
from schoolsched.models.user import User
from schoolsched.schemas.teacher import TeacherCreate, TeacherOut
from schoolsched.services.audit import log_activity

router = APIRouter()


@router.get("", response_model=list[TeacherOut])
def list_teachers(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[TeacherOut]:
    statement = select(Teacher).where(Teacher.deleted_at.is_(None)).order_by(Teacher.full_name)
    return list(db.execute(statement).scalars())


@router.post("", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: TeacherCreate,
    current_user: User = Depends(require_timetable_editor),
    db: Session = Depends(get_db),
) -> TeacherOut:
    existing = db.execute(
        select(Teacher).where(or_(Teacher.employee_id == payload.employee_id, Teacher.email == payload.email))
    ).scalars().first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher already exists")
    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    db.flush()
    log_activity(db, actor=current_user, action="teacher.created", entity_type="teacher", entity_id=teacher.id)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.get("/{teacher_id}", response_model=TeacherOut)
def get_teacher(
    teacher_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeacherOut:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None or teacher.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return teacher

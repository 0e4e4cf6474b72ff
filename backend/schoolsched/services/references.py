from __future__ import annotations

from sqlalchemy.orm import Session

from schoolsched.core.exceptions import ResourceNotFoundError
from schoolsched.models.room import Room
from schoolsched.models.schedule import ClassSchedule
from schoolsched.models.school_class import SchoolClass
from schoolsched.models.subject import Subject
from schoolsched.models.teacher import Teacher
from schoolsched.models.timeslot import ClassTimeslot


def require_class(db: Session, class_id: str) -> SchoolClass:
    school_class = db.get(SchoolClass, class_id)
    if school_class is None:
        raise ResourceNotFoundError("Class", class_id)
    return school_class


def require_timeslot(db: Session, timeslot_id: str) -> ClassTimeslot:
    timeslot = db.get(ClassTimeslot, timeslot_id)
    if timeslot is None or timeslot.deleted_at is not None:
        raise ResourceNotFoundError("Timeslot", timeslot_id)
    return timeslot


def require_schedule(db: Session, schedule_id: str) -> ClassSchedule:
    schedule = db.get(ClassSchedule, schedule_id)
    if schedule is None or schedule.deleted_at is not None:
        raise ResourceNotFoundError("Schedule", schedule_id)
    return schedule


def require_subject(db: Session, subject_id: str) -> Subject:
    subject = db.get(Subject, subject_id)
    if subject is None or subject.deleted_at is not None:
        raise ResourceNotFoundError("Subject", subject_id)
    return subject


def require_teacher(db: Session, teacher_id: str) -> Teacher:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None or teacher.deleted_at is not None:
        raise ResourceNotFoundError("Teacher", teacher_id)
    return teacher


def require_room(db: Session, room_id: str) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise ResourceNotFoundError("Room", room_id)
    return room

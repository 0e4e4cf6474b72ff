from datetime import date

import pytest
import sqlalchemy
from sqlalchemy import select

from schoolsched.core.exceptions import BadRequestError, ConflictError, NotFoundError
from schoolsched.models.activity_log import ActivityLog
from schoolsched.models.schedule import ClassSchedule, ScheduleStatus
from schoolsched.models.schedule_slot import ScheduleSlot
from schoolsched.models.teacher import Teacher
from schoolsched.models.timeslot import TimeslotType, Weekday
from schoolsched.schemas.schedule import ScheduleCreate, ScheduleSlotCreate, ScheduleSlotUpdate, ScheduleUpdate
from schoolsched.schemas.timeslot import TimeslotBulkCreate, TimeslotCreate, TimeslotFields, TimeslotUpdate
from schoolsched.services import schedule_slots, schedules, timeslots
from schoolsched.services.persistence import atomic


def _schedule_payload(class_id, **overrides):
    payload = {
        "class_id": class_id,
        "name": "Term 1",
        "academic_year": "2026",
        "start_date": date(2026, 1, 1),
        "end_date": date(2026, 6, 30),
        "effective_from": date(2026, 1, 5),
    }
    payload.update(overrides)
    return ScheduleCreate(**payload)


def _timeslot_payload(class_id, start="09:00", end="10:00", day="monday", **extra):
    return TimeslotCreate(class_id=class_id, day=day, start_time=start, end_time=end, **extra)


def _slot_count(db, **filters):
    statement = select(ScheduleSlot)
    for key, value in filters.items():
        statement = statement.where(getattr(ScheduleSlot, key) == value)
    return len(list(db.execute(statement).scalars()))


def test_new_schedule_gets_one_slot_per_existing_timeslot(db, actor, school_class):
    for start, end in [("08:00", "08:45"), ("08:45", "09:30"), ("09:30", "09:45")]:
        timeslots.create_timeslot(db, _timeslot_payload(school_class.id, start, end), actor=actor)

    schedule, created = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)

    assert created == 3
    assert schedule.status == ScheduleStatus.inactive
    slots = schedules.list_schedule_slots(db, schedule.id)
    assert len(slots) == 3
    assert all(slot.has_conflict is False and slot.teacher_id is None for slot in slots)


def test_timeslot_round_trip_into_schedule(db, actor, school_class):
    timeslot, _ = timeslots.create_timeslot(
        db, _timeslot_payload(school_class.id, day="Wednesday", type=TimeslotType.lunch), actor=actor
    )
    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)

    [slot] = schedules.list_schedule_slots(db, schedule.id)
    assert slot.timeslot_id == timeslot.id
    assert slot.day == timeslot.day == Weekday.wednesday
    assert slot.type == TimeslotType.lunch


def test_timeslot_fans_out_only_to_active_schedules(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "08:00", "09:00"), actor=actor)
    active, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="Active"), actor=actor)
    schedules.activate_schedule(db, active.id, actor=actor)
    draft, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="Draft"), actor=actor)

    timeslot, created = timeslots.create_timeslot(
        db, _timeslot_payload(school_class.id, "09:00", "10:00"), actor=actor
    )

    assert created == 1
    assert _slot_count(db, timeslot_id=timeslot.id, schedule_id=active.id) == 1
    assert _slot_count(db, timeslot_id=timeslot.id, schedule_id=draft.id) == 0
    [slot] = [item for item in schedules.list_schedule_slots(db, active.id) if item.timeslot_id == timeslot.id]
    assert slot.has_conflict is False


def test_bulk_create_is_all_or_nothing(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "08:00", "09:00"), actor=actor)

    payload = TimeslotBulkCreate(
        class_id=school_class.id,
        timeslots=[
            TimeslotFields(day="tuesday", start_time="08:00", end_time="09:00"),
            TimeslotFields(day="monday", start_time="08:00", end_time="09:00"),
        ],
    )
    with pytest.raises(ConflictError):
        timeslots.bulk_create_timeslots(db, payload, actor=actor)

    assert len(timeslots.list_timeslots(db, school_class.id)) == 1

    created = timeslots.bulk_create_timeslots(
        db,
        TimeslotBulkCreate(
            class_id=school_class.id,
            timeslots=[
                TimeslotFields(day="tuesday", start_time="08:00", end_time="09:00"),
                TimeslotFields(day="monday", start_time="09:00", end_time="10:00"),
            ],
        ),
        actor=actor,
    )
    assert len(created) == 2
    listed = timeslots.list_timeslots(db, school_class.id)
    assert [(item.day, item.start_time) for item in listed] == [
        (Weekday.monday, "08:00"),
        (Weekday.monday, "09:00"),
        (Weekday.tuesday, "08:00"),
    ]


def test_overlapping_timeslots_in_one_class_are_allowed(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "09:00", "10:00"), actor=actor)
    timeslot, _ = timeslots.create_timeslot(
        db, _timeslot_payload(school_class.id, "09:30", "09:45", type=TimeslotType.break_), actor=actor
    )
    assert timeslot.type == TimeslotType.break_


def test_timeslot_requires_start_before_end(db, actor, school_class):
    with pytest.raises(BadRequestError, match="Start time must be before end time"):
        timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "10:00", "10:00"), actor=actor)


def test_timeslot_for_unknown_class_is_not_found(db, actor):
    with pytest.raises(NotFoundError):
        timeslots.create_timeslot(db, _timeslot_payload("missing-class"), actor=actor)


def test_deleting_timeslot_removes_its_schedule_slots(db, actor, school_class):
    timeslot, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    keep, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "10:00", "11:00"), actor=actor)
    for name in ("A", "B", "C"):
        schedules.create_schedule(db, _schedule_payload(school_class.id, name=name), actor=actor)

    removed = timeslots.delete_timeslot(db, timeslot.id, actor=actor)

    assert removed == 3
    assert _slot_count(db, timeslot_id=timeslot.id) == 0
    assert _slot_count(db, timeslot_id=keep.id) == 3
    with pytest.raises(NotFoundError):
        timeslots.get_timeslot(db, timeslot.id)

    audit = db.execute(
        select(ActivityLog).where(ActivityLog.action == "timeslot.deleted", ActivityLog.entity_id == timeslot.id)
    ).scalar_one()
    assert audit.user_id == actor.id
    assert audit.details["deleted_schedule_slots"] == 3
    assert audit.details["actor_role"] == "admin"


def test_deleted_range_can_be_recreated(db, actor, school_class):
    timeslot, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    timeslots.delete_timeslot(db, timeslot.id, actor=actor)

    recreated, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    assert recreated.id != timeslot.id


def test_duplicate_timeslot_range_is_a_conflict(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    with pytest.raises(ConflictError, match="same time range"):
        timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)


def test_day_change_is_rejected_once_timeslot_is_scheduled(db, actor, school_class):
    timeslot, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    unused, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id, day="friday"), actor=actor)
    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)
    # The second timeslot loses its slot so it is no longer referenced.
    [unused_slot] = [slot for slot in schedules.list_schedule_slots(db, schedule.id) if slot.timeslot_id == unused.id]
    schedule_slots.delete_schedule_slot(db, unused_slot.id, actor=actor)

    with pytest.raises(BadRequestError, match="Cannot change the day"):
        timeslots.update_timeslot(db, timeslot.id, TimeslotUpdate(day="tuesday"), actor=actor)

    moved = timeslots.update_timeslot(db, unused.id, TimeslotUpdate(day="thursday"), actor=actor)
    assert moved.day == Weekday.thursday


def test_time_change_recomputes_teacher_conflicts(db, actor, school_class):
    teacher = Teacher(employee_id="T-9", full_name="Lee Park", email="lee@example.com")
    db.add(teacher)
    db.commit()
    first, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "09:00", "10:00"), actor=actor)
    second, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "10:00", "11:00"), actor=actor)
    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)
    slots = {slot.timeslot_id: slot for slot in schedules.list_schedule_slots(db, schedule.id)}
    schedule_slots.update_schedule_slot(db, slots[first.id].id, ScheduleSlotUpdate(teacher_id=teacher.id), actor=actor)
    later = schedule_slots.update_schedule_slot(
        db, slots[second.id].id, ScheduleSlotUpdate(teacher_id=teacher.id), actor=actor
    )
    assert later.has_conflict is False

    timeslots.update_timeslot(db, second.id, TimeslotUpdate(start_time="09:30"), actor=actor)

    db.refresh(later)
    assert later.has_conflict is True


def test_schedule_dates_are_validated(db, actor, school_class):
    with pytest.raises(BadRequestError, match="Start date must be before end date"):
        schedules.create_schedule(
            db,
            _schedule_payload(school_class.id, start_date=date(2026, 7, 1), end_date=date(2026, 6, 1)),
            actor=actor,
        )
    with pytest.raises(BadRequestError, match="Effective date must be within"):
        schedules.create_schedule(
            db, _schedule_payload(school_class.id, effective_from=date(2027, 1, 1)), actor=actor
        )

    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)
    with pytest.raises(BadRequestError, match="Effective date must be within"):
        schedules.update_schedule(db, schedule.id, ScheduleUpdate(end_date=date(2026, 1, 2)), actor=actor)
    renamed = schedules.update_schedule(db, schedule.id, ScheduleUpdate(name="Spring"), actor=actor)
    assert renamed.name == "Spring"


def test_empty_schedule_cannot_be_activated(db, actor, school_class):
    schedule, created = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)
    assert created == 0
    with pytest.raises(BadRequestError, match="empty schedule"):
        schedules.activate_schedule(db, schedule.id, actor=actor)


def test_conflicted_schedule_cannot_be_activated(db, actor, school_class):
    teacher = Teacher(employee_id="T-2", full_name="Mira Chen", email="mira@example.com")
    db.add(teacher)
    db.commit()
    timeslot, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    first, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="First"), actor=actor)
    second, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="Second"), actor=actor)
    [first_slot] = schedules.list_schedule_slots(db, first.id)
    [second_slot] = schedules.list_schedule_slots(db, second.id)
    schedule_slots.update_schedule_slot(db, first_slot.id, ScheduleSlotUpdate(teacher_id=teacher.id), actor=actor)
    flagged = schedule_slots.update_schedule_slot(
        db, second_slot.id, ScheduleSlotUpdate(teacher_id=teacher.id), actor=actor
    )
    assert flagged.has_conflict is True

    with pytest.raises(BadRequestError, match="1 teacher conflicts"):
        schedules.activate_schedule(db, second.id, actor=actor)

    cleared = schedule_slots.update_schedule_slot(db, second_slot.id, ScheduleSlotUpdate(teacher_id=None), actor=actor)
    assert cleared.has_conflict is False
    assert schedules.activate_schedule(db, second.id, actor=actor).status == ScheduleStatus.active


def test_activation_deactivates_previous_active_schedule(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    first, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="First"), actor=actor)
    second, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="Second"), actor=actor)

    schedules.activate_schedule(db, first.id, actor=actor)
    activated = schedules.activate_schedule(db, second.id, actor=actor)

    db.refresh(first)
    assert activated.status == ScheduleStatus.active
    assert first.status == ScheduleStatus.inactive
    listed = schedules.list_schedules(db, school_class.id)
    assert [item.id for item in listed][0] == second.id


def test_second_active_schedule_for_a_class_is_a_conflict(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    first, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="First"), actor=actor)
    schedules.activate_schedule(db, first.id, actor=actor)

    with pytest.raises(ConflictError, match=schedules.ACTIVE_SCHEDULE_EXISTS_MESSAGE):
        with atomic(db, conflict_message=schedules.ACTIVE_SCHEDULE_EXISTS_MESSAGE):
            db.add(
                ClassSchedule(
                    **_schedule_payload(school_class.id, name="Rogue").model_dump(),
                    status=ScheduleStatus.active,
                    created_by_id=actor.id,
                )
            )

    active = db.execute(
        select(ClassSchedule).where(
            ClassSchedule.class_id == school_class.id,
            ClassSchedule.status == ScheduleStatus.active,
        )
    ).scalars().all()
    assert [schedule.id for schedule in active] == [first.id]


def test_racing_activation_surfaces_as_conflict(db, actor, school_class, monkeypatch):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    first, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="First"), actor=actor)
    second, _ = schedules.create_schedule(db, _schedule_payload(school_class.id, name="Second"), actor=actor)
    schedules.activate_schedule(db, first.id, actor=actor)

    # The deactivating update matches nothing, as if another request activated
    # the first schedule after this one read the table.
    monkeypatch.setattr(
        schedules, "update", lambda model: sqlalchemy.update(model).where(sqlalchemy.false())
    )

    with pytest.raises(ConflictError, match=schedules.ACTIVE_SCHEDULE_EXISTS_MESSAGE) as excinfo:
        schedules.activate_schedule(db, second.id, actor=actor)

    assert excinfo.value.status_code == 409
    db.refresh(first)
    db.refresh(second)
    assert first.status == ScheduleStatus.active
    assert second.status == ScheduleStatus.inactive


def test_active_schedule_cannot_be_deleted(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)
    schedules.activate_schedule(db, schedule.id, actor=actor)

    with pytest.raises(BadRequestError, match="Cannot delete an active schedule"):
        schedules.delete_schedule(db, schedule.id, actor=actor)


def test_inactive_schedule_delete_removes_slots(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id, "10:00", "11:00"), actor=actor)
    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)

    removed = schedules.delete_schedule(db, schedule.id, actor=actor)

    assert removed == 2
    assert _slot_count(db, schedule_id=schedule.id) == 0
    assert schedules.list_schedules(db, school_class.id) == []
    with pytest.raises(NotFoundError):
        schedules.get_schedule(db, schedule.id)


def test_default_schedule_is_created_and_activated(db, actor, school_class):
    timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)

    schedule = schedules.ensure_default_schedule(db, school_class.id, actor=actor, today=date(2026, 3, 2))

    assert schedule.name == "Default Schedule 2026"
    assert schedule.status == ScheduleStatus.active
    assert schedule.start_date == date(2026, 1, 1)
    again = schedules.ensure_default_schedule(db, school_class.id, actor=actor, today=date(2026, 3, 2))
    assert again.id == schedule.id


def test_slot_day_must_match_timeslot(db, actor, school_class):
    timeslot, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)
    [slot] = schedules.list_schedule_slots(db, schedule.id)
    schedule_slots.delete_schedule_slot(db, slot.id, actor=actor)

    with pytest.raises(BadRequestError, match="Day mismatch"):
        schedule_slots.create_schedule_slot(
            db,
            ScheduleSlotCreate(schedule_id=schedule.id, timeslot_id=timeslot.id, day="friday"),
            actor=actor,
        )

    created = schedule_slots.create_schedule_slot(
        db,
        ScheduleSlotCreate(schedule_id=schedule.id, timeslot_id=timeslot.id, day="monday"),
        actor=actor,
    )
    assert created.day == Weekday.monday

    with pytest.raises(ConflictError, match="already exists"):
        schedule_slots.create_schedule_slot(
            db,
            ScheduleSlotCreate(schedule_id=schedule.id, timeslot_id=timeslot.id, day="monday"),
            actor=actor,
        )


def test_slot_references_must_exist(db, actor, school_class):
    timeslot, _ = timeslots.create_timeslot(db, _timeslot_payload(school_class.id), actor=actor)
    schedule, _ = schedules.create_schedule(db, _schedule_payload(school_class.id), actor=actor)
    [slot] = schedules.list_schedule_slots(db, schedule.id)

    with pytest.raises(NotFoundError, match="Teacher with ID nobody not found"):
        schedule_slots.update_schedule_slot(db, slot.id, ScheduleSlotUpdate(teacher_id="nobody"), actor=actor)
    with pytest.raises(NotFoundError, match="Schedule with ID missing not found"):
        schedule_slots.create_schedule_slot(
            db,
            ScheduleSlotCreate(schedule_id="missing", timeslot_id=timeslot.id, day="monday"),
            actor=actor,
        )

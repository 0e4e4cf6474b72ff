from sqlalchemy import select

from schoolsched.models.activity_log import ActivityLog
from schoolsched.services.audit import log_activity


def test_activity_is_staged_until_the_caller_commits(db, actor):
    record = log_activity(db, actor=actor, action="class.created", entity_id="class-1")

    assert record.entity_type == "class"
    assert record.user_id == actor.id
    assert record.details == {"actor_role": "admin"}

    db.rollback()
    assert db.execute(select(ActivityLog)).scalars().all() == []


def test_explicit_entity_type_and_details_are_kept(db, actor):
    log_activity(
        db,
        actor=actor,
        action="timetable.teacher_assigned",
        entity_type="schedule_slot",
        entity_id="slot-1",
        details={"teacher_id": "t-1"},
    )
    db.commit()

    stored = db.execute(select(ActivityLog)).scalar_one()
    assert stored.entity_type == "schedule_slot"
    assert stored.details == {"teacher_id": "t-1", "actor_role": "admin"}


def test_anonymous_activity_has_no_user(db):
    record = log_activity(db, actor=None, action="system.bootstrap")

    assert record.user_id is None
    assert record.entity_type == "system"
    assert record.details == {}

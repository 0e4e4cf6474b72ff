"""create school timetable schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
TIMESLOT_TYPES = ("regular", "break", "lunch", "activity", "study_hall", "free_period")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    user_role = sa.Enum("admin", "staff", "teacher", "student", name="user_role")
    weekday = sa.Enum(*WEEKDAYS, name="weekday")
    timeslot_type = sa.Enum(*TIMESLOT_TYPES, name="timeslot_type")
    schedule_status = sa.Enum("active", "inactive", name="schedule_status")

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("section", sa.String(length=20), nullable=True),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", "section", "academic_year", name="uq_classes_name_section_year"),
    )

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("employee_id", sa.String(length=50), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("designation", sa.String(length=200), nullable=False, server_default="Teacher"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_teachers_employee_id", "teachers", ["employee_id"], unique=True)
    op.create_index("ix_teachers_email", "teachers", ["email"], unique=True)

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_subjects_code", "subjects", ["code"], unique=True)

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("room_no", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("building", sa.String(length=200), nullable=True),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="30"),
        *_timestamps(),
    )
    op.create_index("ix_rooms_room_no", "rooms", ["room_no"], unique=True)

    op.create_table(
        "class_timeslots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day", weekday, nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("type", timeslot_type, nullable=False, server_default="regular"),
        sa.Column("label", sa.String(length=100), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("updated_by_id", sa.String(length=36), nullable=True),
        sa.Column("deleted_by_id", sa.String(length=36), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_class_timeslots_class_id", "class_timeslots", ["class_id"])
    op.create_index(
        "uq_class_timeslots_range",
        "class_timeslots",
        ["class_id", "day", "start_time", "end_time"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
        sqlite_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "class_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("status", schedule_status, nullable=False, server_default="inactive"),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("updated_by_id", sa.String(length=36), nullable=True),
        sa.Column("deleted_by_id", sa.String(length=36), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_class_schedules_class_id", "class_schedules", ["class_id"])
    op.create_index(
        "uq_class_schedules_active_class",
        "class_schedules",
        ["class_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active' AND deleted_at IS NULL"),
        sqlite_where=sa.text("status = 'active' AND deleted_at IS NULL"),
    )

    op.create_table(
        "schedule_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "schedule_id",
            sa.String(length=36),
            sa.ForeignKey("class_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "timeslot_id",
            sa.String(length=36),
            sa.ForeignKey("class_timeslots.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day", weekday, nullable=False),
        sa.Column("type", timeslot_type, nullable=False, server_default="regular"),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("room_id", sa.String(length=36), sa.ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True),
        sa.Column("has_conflict", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("updated_by_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("schedule_id", "timeslot_id", name="uq_schedule_slots_schedule_timeslot"),
    )
    op.create_index("ix_schedule_slots_schedule_id", "schedule_slots", ["schedule_id"])
    op.create_index("ix_schedule_slots_timeslot_id", "schedule_slots", ["timeslot_id"])
    op.create_index("ix_schedule_slots_teacher_id", "schedule_slots", ["teacher_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_entity_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_schedule_slots_teacher_id", table_name="schedule_slots")
    op.drop_index("ix_schedule_slots_timeslot_id", table_name="schedule_slots")
    op.drop_index("ix_schedule_slots_schedule_id", table_name="schedule_slots")
    op.drop_table("schedule_slots")
    op.drop_index("uq_class_schedules_active_class", table_name="class_schedules")
    op.drop_index("ix_class_schedules_class_id", table_name="class_schedules")
    op.drop_table("class_schedules")
    op.drop_index("uq_class_timeslots_range", table_name="class_timeslots")
    op.drop_index("ix_class_timeslots_class_id", table_name="class_timeslots")
    op.drop_table("class_timeslots")
    op.drop_index("ix_rooms_room_no", table_name="rooms")
    op.drop_table("rooms")
    op.drop_index("ix_subjects_code", table_name="subjects")
    op.drop_table("subjects")
    op.drop_index("ix_teachers_email", table_name="teachers")
    op.drop_index("ix_teachers_employee_id", table_name="teachers")
    op.drop_table("teachers")
    op.drop_table("classes")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_name in ("schedule_status", "timeslot_type", "weekday", "user_role"):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)

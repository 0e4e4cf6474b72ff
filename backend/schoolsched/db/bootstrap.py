from __future__ import annotations

import logging

from sqlalchemy import inspect

from schoolsched.db.base import Base
from schoolsched.db.session import engine
import schoolsched.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role"},
    "classes": {"id", "name", "section"},
    "class_timeslots": {"id", "class_id", "day", "start_time", "end_time", "type", "label", "deleted_at"},
    "class_schedules": {"id", "class_id", "status", "effective_from", "deleted_at"},
    "schedule_slots": {"id", "schedule_id", "timeslot_id", "day", "teacher_id", "has_conflict"},
    "activity_logs": {"id", "action", "entity_type", "entity_id"},
}


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc

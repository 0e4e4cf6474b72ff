from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from schoolsched.models.activity_log import ActivityLog
from schoolsched.models.user import User

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Stage an audit record in the caller's transaction.

    ``action`` is dotted (``"timeslot.deleted"``); its prefix is the entity
    type unless one is given. The acting user's role at the time is stored
    under ``actor_role`` in the details.
    """
    recorded = dict(details or {})
    if actor is not None:
        recorded.setdefault("actor_role", actor.role.value)
    record = ActivityLog(
        user_id=actor.id if actor is not None else None,
        action=action,
        entity_type=entity_type or action.split(".", 1)[0],
        entity_id=entity_id,
        details=recorded,
    )
    db.add(record)
    logger.debug("Audit %s on %s %s by %s", action, record.entity_type, entity_id, record.user_id)
    return record

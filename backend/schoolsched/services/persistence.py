from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolsched.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, *, conflict_message: str) -> Iterator[Session]:
    """Run the block as one transaction, committing on success.

    Any error rolls the session back. Uniqueness violations raised by the
    database surface as ``ConflictError`` carrying ``conflict_message``.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity violation: %s", conflict_message)
        raise ConflictError(conflict_message) from exc
    except Exception:
        db.rollback()
        raise

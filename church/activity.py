"""Audit trail writer.

Records are appended after the response is produced, on a session of
their own, so a failing insert can never undo or fail the request that
triggered it.
"""

import logging

from fastapi import BackgroundTasks, Depends
from sqlalchemy.exc import SQLAlchemyError

from . import crud
from .database import get_session_factory
from .models import ActivityAction

logger = logging.getLogger(__name__)


def write_activity(session_factory, user_id: int | None, action: ActivityAction, details: str) -> bool:
    """
    Insert one activity record using a fresh session.

    Args:
        session_factory: Callable returning a new SQLAlchemy session.
        user_id (int | None): Acting user, ``None`` for system actions.
        action (ActivityAction): Kind of action.
        details (str): Human-readable description.

    Returns:
        bool: ``True`` when the record was stored.
    """
    db = session_factory()
    try:
        crud.create_activity(db, user_id, action, details)
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record %s activity", ActivityAction(action).value)
        return False
    finally:
        db.close()


class ActivityLogger:
    """Schedules activity records on the request's background tasks."""

    def __init__(self, background_tasks: BackgroundTasks, session_factory):
        self.background_tasks = background_tasks
        self.session_factory = session_factory

    def log(self, user_id: int | None, action: ActivityAction, details: str) -> None:
        self.background_tasks.add_task(
            write_activity, self.session_factory, user_id, action, details
        )


def get_activity_logger(
    background_tasks: BackgroundTasks,
    session_factory=Depends(get_session_factory),
) -> ActivityLogger:
    return ActivityLogger(background_tasks, session_factory)

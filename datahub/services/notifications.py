import logging

from sqlalchemy.orm import Session

from datahub.models import Notification


logger = logging.getLogger(__name__)


def notify_user(db: Session, *, user_id: int, title: str, message: str, type: str = "info") -> Notification | None:
    """Fire-and-forget user notification.

    Runs after the status change it reports has been committed, so a failure
    here is logged and never undoes that change.
    """
    try:
        row = Notification(user_id=user_id, title=title, message=message, type=type)
        db.add(row)
        db.commit()
        return row
    except Exception as exc:
        db.rollback()
        logger.warning("Failed to notify user %s (%s): %s", user_id, title, exc)
        return None

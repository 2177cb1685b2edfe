import logging

from sqlalchemy.orm import Session

from datahub.models import ActivityLog


logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    action: str,
    message: str,
    type: str = "system",
    level: str = "info",
    user_id: int | None = None,
) -> ActivityLog | None:
    logger.info("[activity] %s | %s | %s: %s", type.upper(), level.upper(), action, message)
    try:
        row = ActivityLog(user_id=user_id, type=type, level=level, action=action, message=message)
        db.add(row)
        db.commit()
        return row
    except Exception as exc:
        db.rollback()
        logger.error("Failed to write activity log (%s): %s", action, exc)
        return None

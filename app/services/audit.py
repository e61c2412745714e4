import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(db: Session, event: str, user_id: str | int | None = None, ip: str | None = None, detail: str | None = None) -> None:
    """Best effort: an audit write failure is logged and never fails the request."""
    try:
        db.add(
            AuditLog(
                event=event,
                user_id=str(user_id) if user_id is not None else None,
                ip=ip or None,
                detail=(detail or "")[:255] or None,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("AuditLog write failed (event=%s): %s", event, e)

"""
User order history.

Lookup order: by user id, then by the email denormalized on the order
(guest checkouts, auth-provider migrations), then - if enabled - a full scan
matched in-process. The scan is a small-deployment compatibility path; a
larger store needs an email index maintained at write time instead.
"""
import logging

from sqlmodel import Session, func, select

from app.core.config import settings
from app.core.errors import ValidationError
from app.core.timeutil import as_utc
from app.models import Order
from app.models.order import GUEST_USER_ID

logger = logging.getLogger(__name__)


def _newest_first(orders: list[Order]) -> list[Order]:
    return sorted(orders, key=lambda o: (as_utc(o.created_at), o.id or 0), reverse=True)


def _norm_email(email: str | None) -> str:
    return (email or "").strip().lower()


def list_user_orders(
    db: Session,
    user_id: str | None = None,
    user_email: str | None = None,
    allow_scan: bool | None = None,
) -> list[Order]:
    user_id = (user_id or "").strip()
    user_email = _norm_email(user_email)
    if user_id == GUEST_USER_ID:
        # the sentinel is shared by every guest order; it never identifies one person
        user_id = ""
    if not user_id and not user_email:
        raise ValidationError("userId or email is required", code="USER_REQUIRED")
    if allow_scan is None:
        allow_scan = settings.order_scan_fallback

    orders: list[Order] = []
    if user_id:
        orders = list(
            db.exec(select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc())).all()
        )
        logger.debug("Found %d orders by user_id=%s", len(orders), user_id)

    if not orders and user_email:
        orders = list(
            db.exec(
                select(Order).where(func.lower(Order.user_email) == user_email).order_by(Order.created_at.desc())
            ).all()
        )
        logger.debug("Found %d orders by email", len(orders))

    if not orders and allow_scan:
        scanned = 0
        matched = []
        for order in db.exec(select(Order)).all():
            scanned += 1
            if (user_id and order.user_id == user_id) or (user_email and _norm_email(order.user_email) == user_email):
                matched.append(order)
        if matched:
            logger.warning("Order lookup fell back to a full scan (%d rows) and matched %d", scanned, len(matched))
        orders = matched

    return _newest_first(orders)

"""Order store helpers and admin-side lifecycle changes (status, refund, guest repair)."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from app.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from app.core.timeutil import isoformat, utcnow
from app.models import Order
from app.models.order import GUEST_USER_ID, ORDER_STATUSES, ORDER_TRANSITIONS, PAYMENT_STATUSES, PAYMENT_TRANSITIONS

logger = logging.getLogger(__name__)


def find_order_by_toss_order_id(db: Session, toss_order_id: str) -> Order | None:
    """Store errors are logged and read as 'no order'; the unique index still guards the write."""
    try:
        return db.exec(select(Order).where(Order.toss_order_id == toss_order_id)).first()
    except SQLAlchemyError as e:
        logger.warning("Order lookup failed for toss_order_id=%s: %s", toss_order_id, e)
        db.rollback()
        return None


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("주문을 찾을 수 없습니다.")
    return order


def get_order_by_number(db: Session, order_number: str) -> Order:
    order = db.exec(select(Order).where(Order.order_number == order_number)).first()
    if not order:
        raise NotFoundError("주문을 찾을 수 없습니다.")
    return order


def list_orders(db: Session, status: str | None = None, limit: int = 200) -> list[Order]:
    stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
    if status and status in ORDER_STATUSES:
        stmt = stmt.where(Order.status == status)
    return list(db.exec(stmt).all())


def payment_summary(order: Order) -> dict:
    """Receipt-shaped view of a stored order (used when a confirmation is replayed)."""
    return {
        "paymentKey": order.toss_payment_key,
        "orderId": order.toss_order_id,
        "status": "DONE" if order.payment_status in ("completed", "refunded") else order.payment_status.upper(),
        "totalAmount": order.total_amount,
        "method": order.toss_method,
        "approvedAt": isoformat(order.paid_at),
    }


def _check(field: str, table: dict[str, set[str]], current: str, requested: str) -> None:
    if requested not in table.get(current, set()):
        raise InvalidTransitionError(field, current, requested)


def update_order_status(
    db: Session,
    order: Order,
    status: str | None = None,
    payment_status: str | None = None,
) -> Order:
    """
    Applies admin status changes, enforcing both state machines.
    Setting the same value again is a no-op. Completing a payment stamps paid_at.
    """
    if status is None and payment_status is None:
        raise ValidationError("변경할 상태를 지정하세요.", code="NO_STATUS")
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status: {status}", code="UNKNOWN_STATUS")
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"Unknown payment status: {payment_status}", code="UNKNOWN_STATUS")

    if status is not None and status != order.status:
        _check("status", ORDER_TRANSITIONS, order.status, status)
    if payment_status is not None and payment_status != order.payment_status:
        _check("payment.status", PAYMENT_TRANSITIONS, order.payment_status, payment_status)
        if payment_status == "completed" and not order.toss_payment_key:
            # completed payments always carry the gateway key
            raise ValidationError("결제 키가 없는 주문은 결제 완료로 변경할 수 없습니다.", code="MISSING_PAYMENT_KEY")

    now = utcnow()
    if status is not None:
        order.status = status
    if payment_status is not None and payment_status != order.payment_status:
        order.payment_status = payment_status
        if payment_status == "completed":
            order.paid_at = now
        elif payment_status == "refunded":
            order.refunded_at = now
            order.refund_amount = order.total_amount
    order.updated_at = now
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def refund_order(db: Session, order: Order, amount: int | None = None, reason: str | None = None) -> Order:
    """Records a manual refund. The provider-side refund is issued outside this service."""
    _check("payment.status", PAYMENT_TRANSITIONS, order.payment_status, "refunded")
    refund_amount = order.total_amount if amount is None else amount
    if refund_amount <= 0 or refund_amount > order.total_amount:
        raise ValidationError("환불 금액이 올바르지 않습니다.", code="INVALID_REFUND_AMOUNT")
    now = utcnow()
    order.payment_status = "refunded"
    order.refunded_at = now
    order.refund_amount = refund_amount
    if "cancelled" in ORDER_TRANSITIONS.get(order.status, set()):
        order.status = "cancelled"
    if reason:
        note = f"[refund] {reason.strip()}"
        order.admin_notes = f"{order.admin_notes}\n{note}" if order.admin_notes else note
    order.updated_at = now
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def set_admin_notes(db: Session, order: Order, notes: str | None) -> Order:
    order.admin_notes = (notes or "").strip() or None
    order.updated_at = utcnow()
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def reassign_guest_orders(db: Session, user_id: str, user_email: str | None = None) -> int:
    """
    Re-attributes orders recorded under the guest sentinel to user_id.
    With user_email, only guest orders carrying that email (or no email) move.
    """
    user_id = (user_id or "").strip()
    if not user_id or user_id == GUEST_USER_ID:
        raise ValidationError("userId is required", code="USER_ID_REQUIRED")
    email = (user_email or "").strip().lower()
    stmt = select(Order).where(Order.user_id == GUEST_USER_ID)
    if email:
        stmt = stmt.where((func.lower(Order.user_email) == email) | (Order.user_email == ""))
    orders = list(db.exec(stmt).all())
    now = utcnow()
    for order in orders:
        order.user_id = user_id
        if email:
            order.user_email = email
        order.updated_at = now
        db.add(order)
    db.commit()
    logger.info("Reassigned %d guest orders to user_id=%s", len(orders), user_id)
    return len(orders)

"""
Payment reconciliation: turns a gateway-confirmed payment into exactly one order row.

Exactly-once relies on the UNIQUE index on orders.toss_order_id, not on any
in-memory flag: a replay with the same payment key returns the stored order,
and a concurrent insert that loses the race resolves to the winner's row.
"""
import logging
from datetime import datetime
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.core.errors import PaymentConfirmationError, PersistenceError, ValidationError
from app.core.timeutil import utcnow
from app.models.order import GUEST_USER_ID, PAYMENT_METHOD_TOSS, Order
from app.services.catalog import ProductCatalog
from app.services.order_number import generate_order_number
from app.services.orders import find_order_by_toss_order_id, payment_summary
from app.services.toss import GatewayReceipt, TossPaymentsClient, validate_confirmation_input

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = "고객"
ORDER_NUMBER_ATTEMPTS = 3


class ReconcileResult(NamedTuple):
    order_number: str
    payment: dict
    order_saved: bool
    duplicate: bool = False
    order_id: int | None = None


class _Persisted(NamedTuple):
    order_number: str
    order_id: int | None
    duplicate: bool


def _validate_quantity(quantity) -> int:
    if quantity is None:
        return 1
    if isinstance(quantity, str) and quantity.strip().isdigit():
        quantity = int(quantity.strip())
    if isinstance(quantity, float) and quantity.is_integer():
        quantity = int(quantity)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError()
    return quantity


def _payment_state(receipt: GatewayReceipt, now: datetime) -> tuple[str, str, datetime | None]:
    """(payment_status, order status, paid_at) for a gateway receipt."""
    if receipt.captured:
        return "completed", "confirmed", now
    if receipt.awaiting_capture:
        # accepted but not captured (e.g. virtual account awaiting deposit)
        logger.info("Payment not captured yet: toss_order_id=%s status=%s", receipt.order_id, receipt.status)
        return "pending", "pending", None
    logger.warning("Gateway confirmed with unusable status: toss_order_id=%s status=%s", receipt.order_id, receipt.status)
    raise PaymentConfirmationError(code="PAYMENT_NOT_COMPLETED")


class OrderReconciler:
    def __init__(self, gateway: TossPaymentsClient, catalog: ProductCatalog | None = None):
        self.gateway = gateway
        self.catalog = catalog or ProductCatalog()

    def reconcile(
        self,
        db: Session,
        *,
        payment_key: str,
        order_id: str,
        amount,
        product_id: str | None = None,
        quantity=1,
        user_id: str | None = None,
        customer_name: str | None = None,
        customer_email: str | None = None,
    ) -> ReconcileResult:
        amount = validate_confirmation_input(payment_key, order_id, amount)
        quantity = _validate_quantity(quantity)

        existing = find_order_by_toss_order_id(db, order_id)
        if existing is not None and existing.toss_payment_key == payment_key:
            logger.info("Replayed confirmation for toss_order_id=%s -> %s", order_id, existing.order_number)
            return ReconcileResult(existing.order_number, payment_summary(existing), True, True, existing.id)

        # Gateway errors propagate: no order is written for an unconfirmed payment
        receipt = self.gateway.confirm_payment(payment_key, order_id, amount)
        total_amount = receipt.total_amount if receipt.total_amount is not None else amount

        now = utcnow()
        payment_status, status, paid_at = _payment_state(receipt, now)

        product = self.catalog.resolve(db, product_id, total_amount, quantity)
        if product.source != "placeholder" and product.price * quantity != total_amount:
            logger.warning(
                "Confirmed amount differs from catalog: toss_order_id=%s product=%s expected=%d confirmed=%d",
                order_id,
                product.product_id,
                product.price * quantity,
                total_amount,
            )

        fields = {
            "user_id": (user_id or "").strip() or GUEST_USER_ID,
            # stored lowercased so the email fallback of order history is an exact match
            "user_email": (customer_email or "").strip().lower(),
            "user_name": (customer_name or "").strip() or DEFAULT_CUSTOMER_NAME,
            "product_id": product.product_id,
            "product_name": product.name,
            "product_price": product.price,
            "quantity": quantity,
            "total_amount": total_amount,
            "payment_method": PAYMENT_METHOD_TOSS,
            "payment_status": payment_status,
            "toss_payment_key": receipt.payment_key or payment_key,
            "toss_order_id": order_id,
            "toss_method": receipt.method,
            "paid_at": paid_at,
            "status": status,
            "created_at": now,
            "updated_at": now,
        }
        if fields["user_id"] == GUEST_USER_ID:
            logger.info("Recording guest order for toss_order_id=%s email=%s", order_id, fields["user_email"] or "-")

        order_number = generate_order_number(now)
        try:
            saved = self._persist(db, order_number, fields)
        except PersistenceError as e:
            logger.error(
                "Payment confirmed but order NOT saved: toss_order_id=%s payment_key=%s order_number=%s error=%s",
                order_id,
                payment_key,
                order_number,
                e.message,
            )
            return ReconcileResult(order_number, receipt.summary(), False)

        if saved.duplicate:
            logger.info("Concurrent confirmation for toss_order_id=%s resolved to %s", order_id, saved.order_number)
        else:
            logger.info(
                "Order created: %s (toss_order_id=%s user_id=%s payment_status=%s)",
                saved.order_number,
                order_id,
                fields["user_id"],
                payment_status,
            )
        return ReconcileResult(saved.order_number, receipt.summary(), True, saved.duplicate, saved.order_id)

    def _persist(self, db: Session, order_number: str, fields: dict) -> _Persisted:
        """Insert; on unique violation return the existing row for this gateway order, else retry with a new number."""
        for attempt in range(ORDER_NUMBER_ATTEMPTS):
            if attempt:
                order_number = generate_order_number(fields["created_at"])
            order = Order(order_number=order_number, **fields)
            try:
                db.add(order)
                db.commit()
            except IntegrityError:
                db.rollback()
                existing = find_order_by_toss_order_id(db, fields["toss_order_id"])
                if existing is not None:
                    if existing.toss_payment_key != fields["toss_payment_key"]:
                        logger.warning(
                            "toss_order_id=%s already recorded with a different payment key", fields["toss_order_id"]
                        )
                    return _Persisted(existing.order_number, existing.id, True)
                logger.warning("Order number collision on %s, regenerating", order_number)
                continue
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError(str(e)) from e

            # The row is committed from here on; a failed read-back does not unsave it
            try:
                db.refresh(order)
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning("Order %s saved but could not be reloaded: %s", order_number, e)
                return _Persisted(order_number, None, False)
            return _Persisted(order.order_number, order.id, False)
        raise PersistenceError("could not allocate a unique order number")

"""TossPayments success-redirect confirmation: the only path that creates orders."""
import logging

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from app.api.deps import get_optional_identity, get_reconciler
from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limit import client_ip, limiter
from app.schemas import ConfirmPaymentRequest, ConfirmPaymentResponse, PaymentInfo
from app.services.audit import record_audit
from app.services.identity import Identity
from app.services.reconcile import OrderReconciler

log = logging.getLogger("cruise.payments")

router = APIRouter(prefix="/payments", tags=["payments"])
_CONFIRM_LIMIT = f"{settings.rate_limit_confirm_per_minute}/minute"


@router.post("/toss/confirm", response_model=ConfirmPaymentResponse)
@limiter.limit(_CONFIRM_LIMIT)
def confirm_toss_payment(
    request: Request,
    body: ConfirmPaymentRequest,
    identity: Identity | None = Depends(get_optional_identity),
    reconciler: OrderReconciler = Depends(get_reconciler),
    db: Session = Depends(get_db),
):
    """
    Confirms the payment with Toss and records the order.
    A signed-in caller is always the owner; body userId is only used for
    anonymous checkout. Retries must reuse the same orderId.
    """
    if identity is not None:
        user_id = identity.user_id
        customer_email = body.customer_email or identity.email
        customer_name = body.customer_name or identity.name
    else:
        user_id = body.user_id
        customer_email = body.customer_email
        customer_name = body.customer_name

    result = reconciler.reconcile(
        db,
        payment_key=body.payment_key,
        order_id=body.order_id,
        amount=body.amount,
        product_id=body.product_id,
        quantity=body.quantity,
        user_id=user_id,
        customer_name=customer_name,
        customer_email=customer_email,
    )

    ip = client_ip(request)
    if result.order_saved:
        if not result.duplicate:
            record_audit(db, "payment_confirmed", user_id, ip, result.order_number)
    else:
        log.warning("Order save failed after payment: order_number=%s toss_order_id=%s", result.order_number, body.order_id)
        record_audit(db, "order_save_failed", user_id, ip, f"{result.order_number} {body.order_id}")

    return ConfirmPaymentResponse(
        success=True,
        order_number=result.order_number,
        order_saved=result.order_saved,
        duplicate=result.duplicate,
        payment=PaymentInfo(**result.payment),
    )

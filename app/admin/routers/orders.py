"""Order back-office: list, detail, status changes, manual refund, notes, guest-order repair."""
from fastapi import APIRouter, Depends, Query, Request
from sqlmodel import Session

from app.admin.deps import require_admin
from app.core.database import get_db
from app.core.rate_limit import client_ip
from app.schemas import (
    AdminNoteRequest,
    FixGuestOrdersRequest,
    OrderListResponse,
    OrderRead,
    RefundRequest,
    StatusUpdateRequest,
)
from app.services.audit import record_audit
from app.services.orders import (
    get_order,
    list_orders,
    reassign_guest_orders,
    refund_order,
    set_admin_notes,
    update_order_status,
)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=OrderListResponse)
@router.get("/", response_model=OrderListResponse, include_in_schema=False)
def orders_list(
    status: str | None = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    orders = list_orders(db, status=status, limit=limit)
    return OrderListResponse(orders=[OrderRead.from_order(o) for o in orders], count=len(orders))


# Registered before /{order_id} so "fix-guest" is not parsed as an id
@router.post("/fix-guest")
def fix_guest_orders(body: FixGuestOrdersRequest, request: Request, db: Session = Depends(get_db)):
    updated = reassign_guest_orders(db, body.user_id, body.user_email)
    record_audit(db, "fix_guest_orders", body.user_id, client_ip(request), f"updated={updated}")
    if not updated:
        return {"message": "No guest orders found", "updated": 0}
    return {"message": f"Successfully updated {updated} orders", "updated": updated}


@router.get("/{order_id}", response_model=OrderRead)
def order_detail(order_id: int, db: Session = Depends(get_db)):
    return OrderRead.from_order(get_order(db, order_id))


@router.patch("/{order_id}/status", response_model=OrderRead)
def order_update_status(order_id: int, body: StatusUpdateRequest, request: Request, db: Session = Depends(get_db)):
    order = get_order(db, order_id)
    before = f"{order.status}/{order.payment_status}"
    order = update_order_status(db, order, status=body.status, payment_status=body.payment_status)
    record_audit(
        db,
        "admin_status_change",
        order.user_id,
        client_ip(request),
        f"{order.order_number} {before} -> {order.status}/{order.payment_status}",
    )
    return OrderRead.from_order(order)


@router.post("/{order_id}/refund", response_model=OrderRead)
def order_refund(order_id: int, body: RefundRequest, request: Request, db: Session = Depends(get_db)):
    order = refund_order(db, get_order(db, order_id), amount=body.amount, reason=body.reason)
    record_audit(db, "refund", order.user_id, client_ip(request), f"{order.order_number} {order.refund_amount}")
    return OrderRead.from_order(order)


@router.post("/{order_id}/note", response_model=OrderRead)
def order_note(order_id: int, body: AdminNoteRequest, db: Session = Depends(get_db)):
    return OrderRead.from_order(set_admin_notes(db, get_order(db, order_id), body.admin_notes))

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session

from app.api.deps import get_current_identity
from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limit import limiter
from app.schemas import OrderListResponse, OrderRead
from app.services.identity import Identity
from app.services.order_query import list_user_orders
from app.services.orders import get_order_by_number

router = APIRouter(prefix="/orders", tags=["orders"])
_READ_LIMIT = f"{settings.rate_limit_per_minute}/minute"


@router.get("/user", response_model=OrderListResponse)
@limiter.limit(_READ_LIMIT)
def user_orders(
    request: Request,
    user_id: str | None = Query(None, alias="userId"),
    email: str | None = Query(None),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """My page order history. Only admins may look up someone else."""
    if identity.is_admin and (user_id or email):
        lookup_id, lookup_email = user_id, email
    else:
        lookup_id, lookup_email = identity.user_id, identity.email
    orders = list_user_orders(db, user_id=lookup_id, user_email=lookup_email)
    return OrderListResponse(orders=[OrderRead.from_order(o) for o in orders], count=len(orders))


@router.get("/{order_number}", response_model=OrderRead)
@limiter.limit(_READ_LIMIT)
def order_detail(
    request: Request,
    order_number: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    order = get_order_by_number(db, order_number)
    owns = order.user_id == identity.user_id or (
        order.user_email and order.user_email.strip().lower() == identity.email.strip().lower()
    )
    if not owns and not identity.is_admin:
        # same answer as a missing order; order numbers are not enumerable
        raise HTTPException(status_code=404, detail="주문을 찾을 수 없습니다.")
    return OrderRead.from_order(order)

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.core.timeutil import as_utc
from app.models import Order


def _ts(value) -> datetime | None:
    return as_utc(value) if value is not None else None


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentRead(_Camel):
    method: str
    status: str
    toss_payment_key: str | None = None
    toss_order_id: str | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_amount: int | None = None


class OrderRead(_Camel):
    id: int
    order_number: str
    user_id: str
    user_email: str
    user_name: str
    user_phone: str = ""
    product_id: str
    product_name: str
    product_price: int
    quantity: int
    total_amount: int
    payment: PaymentRead
    status: str
    admin_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, o: Order) -> "OrderRead":
        return cls(
            id=o.id or 0,
            order_number=o.order_number,
            user_id=o.user_id,
            user_email=o.user_email or "",
            user_name=o.user_name or "",
            user_phone=o.user_phone or "",
            product_id=o.product_id,
            product_name=o.product_name,
            product_price=o.product_price,
            quantity=o.quantity,
            total_amount=o.total_amount,
            payment=PaymentRead(
                method=o.payment_method,
                status=o.payment_status,
                toss_payment_key=o.toss_payment_key,
                toss_order_id=o.toss_order_id,
                paid_at=_ts(o.paid_at),
                refunded_at=_ts(o.refunded_at),
                refund_amount=o.refund_amount,
            ),
            status=o.status,
            admin_notes=o.admin_notes,
            created_at=as_utc(o.created_at),
            updated_at=as_utc(o.updated_at),
        )


class OrderListResponse(BaseModel):
    orders: list[OrderRead]
    count: int


class StatusUpdateRequest(_Camel):
    status: Literal["pending", "confirmed", "completed", "cancelled"] | None = None
    payment_status: Literal["pending", "completed", "failed", "refunded"] | None = None


class RefundRequest(_Camel):
    amount: int | None = None
    reason: str | None = None


class AdminNoteRequest(_Camel):
    admin_notes: str | None = None


class FixGuestOrdersRequest(_Camel):
    user_id: str
    user_email: str | None = None

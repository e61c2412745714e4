from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.timeutil import utcnow

GUEST_USER_ID = "guest"
PAYMENT_METHOD_TOSS = "toss"

ORDER_STATUSES = ("pending", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")

# pending -> confirmed -> completed; pending/confirmed -> cancelled
ORDER_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

# pending -> completed | failed; completed -> refunded (manual)
PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"completed", "failed"},
    "completed": {"refunded"},
    "failed": set(),
    "refunded": set(),
}


class Order(SQLModel, table=True):
    """A confirmed booking. Product name/price are snapshotted at order time."""

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)  # ORD-YYYYMMDD-XXXXXX
    user_id: str = Field(default=GUEST_USER_ID, index=True)
    user_email: str = Field(default="", index=True)
    user_name: str = ""
    user_phone: str = ""
    product_id: str = "unknown"
    product_name: str
    product_price: int  # KRW, unit price at order time
    quantity: int = 1
    total_amount: int  # amount confirmed by the gateway

    # Payment sub-record
    payment_method: str = PAYMENT_METHOD_TOSS
    payment_status: str = "pending"
    toss_payment_key: str | None = None
    # Gateway order id; unique so one payment can never produce two orders
    toss_order_id: str | None = Field(default=None, unique=True, index=True)
    toss_method: str | None = None  # gateway-reported method, e.g. "카드", "간편결제"
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_amount: int | None = None

    status: str = Field(default="pending", index=True)
    admin_notes: str | None = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

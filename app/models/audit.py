from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.timeutil import utcnow


class AuditLog(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)  # login, register, payment_confirmed, order_save_failed, refund, ...
    user_id: str | None = Field(default=None, index=True)
    ip: str | None = None
    detail: str | None = None  # order number / gateway order id
    created_at: datetime = Field(default_factory=utcnow)

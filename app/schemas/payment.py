from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ConfirmPaymentRequest(BaseModel):
    """Sent by the payment success page with the widget's redirect parameters.

    Required fields are validated by the reconciler (not here) so a missing
    key maps to the same "invalid payment information" error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_key: str | None = None
    order_id: str | None = None
    amount: int | str | None = None
    product_id: str | None = None
    quantity: int | str | None = 1
    user_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None


class PaymentInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_key: str | None = None
    order_id: str | None = None
    status: str | None = None
    total_amount: int | None = None
    method: str | None = None
    approved_at: str | None = None


class ConfirmPaymentResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    order_number: str
    order_saved: bool
    duplicate: bool = False
    payment: PaymentInfo

from .auth import Token, UserResponse
from .order import (
    AdminNoteRequest,
    FixGuestOrdersRequest,
    OrderListResponse,
    OrderRead,
    RefundRequest,
    StatusUpdateRequest,
)
from .payment import ConfirmPaymentRequest, ConfirmPaymentResponse, PaymentInfo

__all__ = [
    "AdminNoteRequest",
    "ConfirmPaymentRequest",
    "ConfirmPaymentResponse",
    "FixGuestOrdersRequest",
    "OrderListResponse",
    "OrderRead",
    "PaymentInfo",
    "RefundRequest",
    "StatusUpdateRequest",
    "Token",
    "UserResponse",
]

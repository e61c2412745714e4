"""Checkout error taxonomy. Each error knows the HTTP status and message it maps to."""


class CheckoutError(Exception):
    """Base exception for the payment/order flow."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "서버 오류가 발생했습니다."

    def __init__(self, message: str | None = None, *, code: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(CheckoutError):
    """Caller input missing or malformed. Raised before any external call."""

    status_code = 400
    code = "INVALID_PAYMENT_INFO"
    default_message = "잘못된 결제 정보입니다."


class ConfigurationError(CheckoutError):
    """A required server secret is absent. The message never names the secret's value."""

    status_code = 500
    code = "PAYMENT_NOT_CONFIGURED"
    default_message = "서버 오류가 발생했습니다."


class PaymentConfirmationError(CheckoutError):
    """The gateway rejected the payment or could not be reached."""

    status_code = 400
    code = "PAYMENT_CONFIRMATION_FAILED"
    default_message = "결제 확인에 실패했습니다."


class PersistenceError(CheckoutError):
    """The order store could not be written."""

    code = "ORDER_NOT_SAVED"
    default_message = "주문 저장에 실패했습니다."


class NotFoundError(CheckoutError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "찾을 수 없습니다."


class InvalidTransitionError(CheckoutError):
    status_code = 409
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, field: str, current: str, requested: str):
        self.field = field
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition {field} from {current} to {requested}")

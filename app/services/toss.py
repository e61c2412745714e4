"""TossPayments confirmation client. The gateway is the only authority on whether money moved."""
import base64
import json
import logging
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request as UrlRequest, urlopen

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import Settings
from app.core.errors import ConfigurationError, PaymentConfirmationError, ValidationError

logger = logging.getLogger(__name__)

CONFIRM_PATH = "/v1/payments/confirm"
PAYMENT_PATH = "/v1/payments/"
ALREADY_PROCESSED = "ALREADY_PROCESSED_PAYMENT"

# Money captured
CAPTURED_STATUSES = frozenset({"DONE"})
# Accepted by the gateway, money not yet captured (virtual account awaiting deposit etc.)
AWAITING_STATUSES = frozenset({"READY", "IN_PROGRESS", "WAITING_FOR_DEPOSIT"})


class GatewayReceipt(BaseModel):
    """Gateway's record of a confirmed payment. Unknown fields (card, easyPay, ...) are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    payment_key: str = Field(alias="paymentKey")
    order_id: str = Field(alias="orderId")
    status: str = ""
    total_amount: int | None = Field(default=None, alias="totalAmount")
    method: str | None = None
    approved_at: str | None = Field(default=None, alias="approvedAt")

    @property
    def captured(self) -> bool:
        return self.status in CAPTURED_STATUSES

    @property
    def awaiting_capture(self) -> bool:
        return self.status in AWAITING_STATUSES

    def summary(self) -> dict:
        return {
            "paymentKey": self.payment_key,
            "orderId": self.order_id,
            "status": self.status,
            "totalAmount": self.total_amount,
            "method": self.method,
            "approvedAt": self.approved_at,
        }


def validate_confirmation_input(payment_key, order_id, amount) -> int:
    """Non-empty key and order id, positive integer amount. Returns the amount as int."""
    if not payment_key or not str(payment_key).strip():
        raise ValidationError()
    if not order_id or not str(order_id).strip():
        raise ValidationError()
    if amount is None or isinstance(amount, bool):
        raise ValidationError()
    if isinstance(amount, float):
        if not amount.is_integer():
            raise ValidationError()
        amount = int(amount)
    if isinstance(amount, str):
        if not amount.strip().isdigit():
            raise ValidationError()
        amount = int(amount.strip())
    if not isinstance(amount, int) or amount <= 0:
        raise ValidationError()
    return amount


class TossPaymentsClient:
    def __init__(self, secret_key: str, base_url: str = "https://api.tosspayments.com", timeout: float = 20.0, opener=urlopen):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._opener = opener

    @classmethod
    def from_settings(cls, settings: Settings, opener=urlopen) -> "TossPaymentsClient":
        return cls(
            secret_key=settings.toss_secret_key,
            base_url=settings.toss_api_base,
            timeout=settings.toss_timeout_seconds,
            opener=opener,
        )

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    def _auth_header(self) -> str:
        # Basic auth: "<secret>:" with an empty password
        token = base64.b64encode(f"{self.secret_key}:".encode()).decode()
        return f"Basic {token}"

    def _send(self, req: UrlRequest, order_id: str) -> GatewayReceipt:
        """Runs one gateway call and maps every failure to PaymentConfirmationError."""
        try:
            with self._opener(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode() or "{}")
        except HTTPError as e:
            payload = _read_error_body(e)
            message = payload.get("message") or "Payment confirmation failed"
            code = payload.get("code") or "PAYMENT_CONFIRMATION_FAILED"
            logger.warning(
                "Toss %s rejected: order_id=%s status=%s code=%s message=%s",
                req.get_method(),
                order_id,
                e.code,
                code,
                message,
            )
            raise PaymentConfirmationError(message, code=code, status_code=e.code) from e
        except (URLError, OSError) as e:
            logger.error("Toss unreachable: order_id=%s error=%s", order_id, e)
            raise PaymentConfirmationError(
                "결제 서버에 연결할 수 없습니다.", code="GATEWAY_UNREACHABLE", status_code=502
            ) from e
        except ValueError as e:
            logger.error("Toss returned invalid JSON: order_id=%s", order_id)
            raise PaymentConfirmationError(code="GATEWAY_BAD_RESPONSE", status_code=502) from e

        try:
            return GatewayReceipt.model_validate(data)
        except ValueError as e:
            logger.error("Toss receipt incomplete: order_id=%s keys=%s", order_id, sorted(data))
            raise PaymentConfirmationError(code="GATEWAY_BAD_RESPONSE", status_code=502) from e

    def get_payment(self, payment_key: str, order_id: str = "-") -> GatewayReceipt:
        """GET /v1/payments/{paymentKey}: the gateway's current record of a payment."""
        if not self.configured:
            raise ConfigurationError()
        req = UrlRequest(
            self.base_url + PAYMENT_PATH + quote(payment_key, safe=""),
            method="GET",
            headers={"Authorization": self._auth_header()},
        )
        return self._send(req, order_id)

    def confirm_payment(self, payment_key: str, order_id: str, amount: int) -> GatewayReceipt:
        """
        One authenticated POST to the confirm endpoint. No automatic retry.

        A payment the gateway already confirmed (an earlier attempt whose
        response was lost or whose order was not saved) is answered with the
        gateway's stored record instead of an error, provided it belongs to
        the same order id.
        """
        amount = validate_confirmation_input(payment_key, order_id, amount)
        if not self.configured:
            logger.error("TOSS_SECRET_KEY is not set; refusing to confirm order_id=%s", order_id)
            raise ConfigurationError()

        body = json.dumps({"paymentKey": payment_key, "orderId": order_id, "amount": amount}).encode()
        req = UrlRequest(
            self.base_url + CONFIRM_PATH,
            data=body,
            method="POST",
            headers={"Authorization": self._auth_header(), "Content-Type": "application/json"},
        )
        try:
            receipt = self._send(req, order_id)
        except PaymentConfirmationError as e:
            if e.code != ALREADY_PROCESSED:
                raise
            logger.warning("Toss payment already confirmed, fetching stored record: order_id=%s", order_id)
            receipt = self.get_payment(payment_key, order_id)
            if receipt.order_id != order_id:
                logger.error(
                    "Already-processed payment belongs to another order: order_id=%s gateway_order_id=%s",
                    order_id,
                    receipt.order_id,
                )
                raise
        logger.info("Toss payment confirmed: order_id=%s status=%s", receipt.order_id, receipt.status)
        return receipt


def _read_error_body(e: HTTPError) -> dict:
    try:
        raw = e.read().decode()
        data = json.loads(raw) if raw else {}
        return data if isinstance(data, dict) else {}
    except (ValueError, OSError):
        return {}

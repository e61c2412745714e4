"""Pytest fixtures: test client, in-memory SQLite, stubbed TossPayments gateway."""
import io
import json
import os
from urllib.error import HTTPError
from urllib.parse import unquote

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

# Must be set before app is imported (settings are read at import time)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("TOSS_SECRET_KEY", "test_sk_dummy")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
# High limits so the whole suite fits inside one window
os.environ.setdefault("RATE_LIMIT_REGISTER_PER_MINUTE", "100")
os.environ.setdefault("RATE_LIMIT_CONFIRM_PER_MINUTE", "1000")

from app.api.deps import get_payment_gateway
from app.core.database import create_db_engine, init_db
from app.core.rate_limit import limiter
from app.main import app
from app.models import User
from app.services.toss import TossPaymentsClient

ADMIN_SECRET = "test-admin-secret"


class FakeTossOpener:
    """Drop-in for urlopen: records gateway calls and answers like the confirm/lookup endpoints.

    Payments confirmed successfully are remembered, so GET /v1/payments/{key}
    returns them the way the gateway does. reject() only affects confirms.
    """

    def __init__(self):
        self.calls: list[dict] = []
        self.status = 200
        self.body: dict | None = None
        self.payments: dict[str, dict] = {}

    def reject(self, status: int, body: dict) -> None:
        self.status = status
        self.body = body

    def _error(self, req, status: int, body: dict):
        return HTTPError(req.full_url, status, "error", None, io.BytesIO(json.dumps(body).encode()))

    def __call__(self, req, timeout=None):
        payload = json.loads(req.data.decode()) if req.data else None
        self.calls.append(
            {
                "method": req.get_method(),
                "url": req.full_url,
                "authorization": req.get_header("Authorization"),
                "payload": payload,
            }
        )
        if req.get_method() == "GET":
            payment_key = unquote(req.full_url.rsplit("/", 1)[-1])
            if payment_key not in self.payments:
                raise self._error(req, 404, {"code": "NOT_FOUND_PAYMENT", "message": "존재하지 않는 결제 정보 입니다."})
            return io.BytesIO(json.dumps(self.payments[payment_key]).encode())

        if self.status >= 400:
            raise self._error(req, self.status, self.body or {})
        body = self.body or {
            "paymentKey": payload["paymentKey"],
            "orderId": payload["orderId"],
            "status": "DONE",
            "totalAmount": payload["amount"],
            "method": "카드",
            "approvedAt": "2024-05-01T10:00:00+09:00",
        }
        if "paymentKey" in body:
            self.payments[body["paymentKey"]] = body
        return io.BytesIO(json.dumps(body).encode())


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def toss_opener():
    return FakeTossOpener()


@pytest.fixture
def gateway(toss_opener):
    return TossPaymentsClient(secret_key="test_sk_dummy", opener=toss_opener)


@pytest.fixture(scope="function")
def client(gateway):
    """TestClient; the lifespan builds a fresh in-memory DB per test."""
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Service-level tests: a private in-memory store."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


def register_and_login(client: TestClient, email: str, password: str = "test123456", full_name: str = "Test User") -> str:
    client.post(
        "/auth/register",
        data={"email": email, "password": password, "full_name": full_name, "phone": "010-1234-5678"},
    )
    r = client.post("/auth/login", data={"email": email, "password": password})
    assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
    return r.json()["access_token"]


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    token = register_and_login(client, "test@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_auth_headers(client: TestClient) -> dict:
    """Bearer token of a user whose role is admin."""
    token = register_and_login(client, "admin@example.com", full_name="Admin")
    with Session(client.app.state.engine) as db:
        user = db.exec(select(User).where(User.email == "admin@example.com")).one()
        user.role = "admin"
        db.add(user)
        db.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Secret": ADMIN_SECRET}


@pytest.fixture
def other_user_headers(client: TestClient) -> dict:
    token = register_and_login(client, "other@example.com", full_name="Other User")
    return {"Authorization": f"Bearer {token}"}

"""GET /orders/user and /orders/{order_number}: ownership rules."""
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.models import Order


def _store(client: TestClient, n: int, user_id: str = "guest", email: str = "") -> str:
    number = f"ORD-20240501-{n:06d}"
    with Session(client.app.state.engine) as db:
        db.add(
            Order(
                order_number=number,
                user_id=user_id,
                user_email=email,
                product_name="로얄",
                product_price=12900000,
                total_amount=12900000,
                toss_payment_key=f"pk_{n}",
                toss_order_id=f"ord_{n}",
                payment_status="completed",
                status="confirmed",
            )
        )
        db.commit()
    return number


def test_history_requires_login(client: TestClient):
    assert client.get("/orders/user").status_code == 401


def test_history_falls_back_to_email(client: TestClient, auth_headers: dict):
    # guest checkout made before the account existed
    number = _store(client, 1, email="test@example.com")
    j = client.get("/orders/user", headers=auth_headers).json()
    assert j["count"] == 1
    assert j["orders"][0]["orderNumber"] == number
    assert j["orders"][0]["payment"]["tossOrderId"] == "ord_1"


def test_history_ignores_foreign_query_for_non_admin(client: TestClient, auth_headers: dict):
    _store(client, 1, user_id="u-other", email="other@example.com")
    j = client.get("/orders/user", params={"userId": "u-other"}, headers=auth_headers).json()
    assert j["count"] == 0


def test_admin_can_query_any_user(client: TestClient, admin_auth_headers: dict):
    _store(client, 1, user_id="u-other")
    j = client.get("/orders/user", params={"userId": "u-other"}, headers=admin_auth_headers).json()
    assert j["count"] == 1


def test_detail_for_owner(client: TestClient, auth_headers: dict):
    number = _store(client, 1, email="test@example.com")
    r = client.get(f"/orders/{number}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["productName"] == "로얄"


def test_detail_hidden_from_other_users(client: TestClient, other_user_headers: dict):
    number = _store(client, 1, email="owner@example.com")
    r = client.get(f"/orders/{number}", headers=other_user_headers)
    assert r.status_code == 404


def test_detail_missing(client: TestClient, auth_headers: dict):
    assert client.get("/orders/ORD-20240501-ZZZZZZ", headers=auth_headers).status_code == 404

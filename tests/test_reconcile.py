"""Order reconciliation against a stubbed gateway and an in-memory store."""
import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.core.errors import PaymentConfirmationError, ValidationError
from app.models import Order, Product
from app.services.order_number import ORDER_NUMBER_RE
from app.services.order_query import list_user_orders
from app.services.reconcile import OrderReconciler


@pytest.fixture
def reconciler(gateway):
    return OrderReconciler(gateway)


def _orders(db):
    return list(db.exec(select(Order)).all())


def test_confirmed_payment_creates_one_order(db_session, reconciler):
    result = reconciler.reconcile(
        db_session,
        payment_key="pk_1",
        order_id="ord_1",
        amount=599000,
        product_id="voyager",
        quantity=1,
        user_id="u1",
        customer_email="a@b.com",
    )

    assert result.order_saved is True
    assert result.duplicate is False
    assert ORDER_NUMBER_RE.match(result.order_number)
    orders = list_user_orders(db_session, user_id="u1")
    assert len(orders) == 1
    order = orders[0]
    assert order.total_amount == 599000
    assert order.payment_status == "completed"
    assert order.status == "confirmed"
    assert order.toss_payment_key == "pk_1"
    assert order.toss_order_id == "ord_1"
    assert order.user_email == "a@b.com"
    assert order.paid_at is not None


def test_gateway_rejection_writes_nothing(db_session, reconciler, toss_opener):
    toss_opener.reject(400, {"code": "REJECT_CARD_COMPANY", "message": "REJECT_CARD_COMPANY"})
    with pytest.raises(PaymentConfirmationError) as exc:
        reconciler.reconcile(
            db_session, payment_key="pk_1", order_id="ord_1", amount=599000, product_id="voyager", user_id="u1"
        )
    assert "REJECT_CARD_COMPANY" in exc.value.message
    assert list_user_orders(db_session, user_id="u1") == []


@pytest.mark.parametrize(
    "payment_key,order_id,amount",
    [(None, "ord_1", 1000), ("pk_1", None, 1000), ("pk_1", "ord_1", None), ("pk_1", "ord_1", 0), ("pk_1", "ord_1", -1)],
)
def test_invalid_input_has_no_side_effects(db_session, reconciler, toss_opener, payment_key, order_id, amount):
    with pytest.raises(ValidationError):
        reconciler.reconcile(db_session, payment_key=payment_key, order_id=order_id, amount=amount)
    assert toss_opener.calls == []
    assert _orders(db_session) == []


def test_invalid_quantity(db_session, reconciler, toss_opener):
    with pytest.raises(ValidationError):
        reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000, quantity=0)
    assert toss_opener.calls == []


def test_replay_returns_existing_order_without_gateway_call(db_session, reconciler, toss_opener):
    first = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000, user_id="u1")
    second = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000, user_id="u1")

    assert second.duplicate is True
    assert second.order_saved is True
    assert second.order_number == first.order_number
    assert second.payment["paymentKey"] == "pk_1"
    assert len(toss_opener.calls) == 1
    assert len(_orders(db_session)) == 1


def test_concurrent_insert_resolves_to_existing_row(db_session, reconciler):
    # Another request already stored an order for this gateway order id
    db_session.add(
        Order(
            order_number="ORD-20240501-AAAAAA",
            product_name="보이저",
            product_price=1000,
            total_amount=1000,
            toss_payment_key="pk_other",
            toss_order_id="ord_1",
            payment_status="completed",
            status="confirmed",
        )
    )
    db_session.commit()

    result = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000)

    assert result.duplicate is True
    assert result.order_number == "ORD-20240501-AAAAAA"
    assert len(_orders(db_session)) == 1


def test_anonymous_checkout_is_guest(db_session, reconciler):
    reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000)
    order = _orders(db_session)[0]
    assert order.user_id == "guest"
    assert order.user_name == "고객"


def test_static_catalog_fallback(db_session, reconciler):
    reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=5490000, product_id="voyager")
    order = _orders(db_session)[0]
    assert order.product_name == "보이저"
    assert order.product_price == 5490000


def test_unknown_product_uses_placeholder(db_session, reconciler):
    reconciler.reconcile(
        db_session, payment_key="pk_1", order_id="ord_1", amount=1000001, product_id="mystery", quantity=2
    )
    order = _orders(db_session)[0]
    assert order.product_name == "크루즈 상품"
    assert order.product_price == 500000
    assert order.product_id == "mystery"


def test_store_product_wins_over_static(db_session, reconciler):
    db_session.add(Product(id="voyager", slug="voyager-10n11d", name="Voyager", name_ko="보이저 스페셜", price=4990000))
    db_session.commit()
    reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=4990000, product_id="voyager")
    order = _orders(db_session)[0]
    assert order.product_name == "보이저 스페셜"
    assert order.product_price == 4990000


def test_amount_mismatch_is_recorded_not_rejected(db_session, reconciler, caplog):
    result = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=599000, product_id="voyager")
    assert result.order_saved is True
    assert _orders(db_session)[0].total_amount == 599000
    assert "differs from catalog" in caplog.text


def test_total_comes_from_gateway_receipt(db_session, reconciler, toss_opener):
    toss_opener.body = {"paymentKey": "pk_1", "orderId": "ord_1", "status": "DONE", "totalAmount": 900}
    reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000)
    assert _orders(db_session)[0].total_amount == 900


def test_persistence_failure_still_returns_order_number(db_session, reconciler):
    Order.__table__.drop(db_session.get_bind())

    result = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000, user_id="u1")

    assert result.order_saved is False
    assert ORDER_NUMBER_RE.match(result.order_number)
    assert result.payment["paymentKey"] == "pk_1"


def test_virtual_account_waiting_for_deposit_is_pending(db_session, reconciler, toss_opener):
    toss_opener.body = {
        "paymentKey": "pk_1",
        "orderId": "ord_1",
        "status": "WAITING_FOR_DEPOSIT",
        "totalAmount": 1000,
        "method": "가상계좌",
    }

    result = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000, user_id="u1")

    assert result.order_saved is True
    order = _orders(db_session)[0]
    assert order.payment_status == "pending"
    assert order.status == "pending"
    assert order.paid_at is None
    assert order.toss_method == "가상계좌"


def test_uncaptured_terminal_status_writes_nothing(db_session, reconciler, toss_opener):
    toss_opener.body = {"paymentKey": "pk_1", "orderId": "ord_1", "status": "ABORTED", "totalAmount": 1000}
    with pytest.raises(PaymentConfirmationError) as exc:
        reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000)
    assert exc.value.code == "PAYMENT_NOT_COMPLETED"
    assert _orders(db_session) == []


def test_retry_after_failed_save_recovers_already_processed_payment(db_session, reconciler, toss_opener):
    bind = db_session.get_bind()
    Order.__table__.drop(bind)
    first = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000, user_id="u1")
    assert first.order_saved is False

    # store is back; the gateway now refuses a second confirm of the same payment
    Order.__table__.create(bind)
    toss_opener.reject(400, {"code": "ALREADY_PROCESSED_PAYMENT", "message": "이미 처리된 결제 입니다."})

    second = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000, user_id="u1")

    assert second.order_saved is True
    assert second.duplicate is False
    assert toss_opener.calls[-1]["method"] == "GET"
    orders = list_user_orders(db_session, user_id="u1")
    assert len(orders) == 1
    assert orders[0].payment_status == "completed"
    assert orders[0].total_amount == 1000


def test_failed_reload_after_commit_counts_as_saved(db_session, reconciler, monkeypatch):
    def broken_refresh(instance, *args, **kwargs):
        raise OperationalError("SELECT orders", {}, Exception("connection lost"))

    monkeypatch.setattr(db_session, "refresh", broken_refresh)

    result = reconciler.reconcile(db_session, payment_key="pk_1", order_id="ord_1", amount=1000)

    assert result.order_saved is True
    assert ORDER_NUMBER_RE.match(result.order_number)
    assert [o.order_number for o in _orders(db_session)] == [result.order_number]


def test_customer_email_stored_lowercase(db_session, reconciler):
    reconciler.reconcile(
        db_session, payment_key="pk_1", order_id="ord_1", amount=1000, customer_email=" Kim@Example.COM "
    )
    assert _orders(db_session)[0].user_email == "kim@example.com"
    assert len(list_user_orders(db_session, user_email="KIM@example.com", allow_scan=False)) == 1

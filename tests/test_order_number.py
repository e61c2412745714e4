from datetime import datetime, timezone

from app.services.order_number import ORDER_NUMBER_RE, generate_order_number


def test_format_uses_utc_date():
    number = generate_order_number(datetime(2024, 12, 31, 23, 30, tzinfo=timezone.utc))
    assert number.startswith("ORD-20241231-")
    assert ORDER_NUMBER_RE.match(number)


def test_suffix_is_random():
    numbers = {generate_order_number() for _ in range(50)}
    assert len(numbers) > 45

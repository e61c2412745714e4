import re
import secrets
import string
from datetime import datetime

from app.core.timeutil import as_utc, utcnow

BASE36 = string.digits + string.ascii_uppercase
ORDER_NUMBER_RE = re.compile(r"^ORD-\d{8}-[A-Z0-9]{6}$")


def generate_order_number(now: datetime | None = None) -> str:
    """ORD-YYYYMMDD-XXXXXX: UTC confirmation date + 6 random base-36 characters."""
    date_str = as_utc(now or utcnow()).strftime("%Y%m%d")
    suffix = "".join(secrets.choice(BASE36) for _ in range(6))
    return f"ORD-{date_str}-{suffix}"

from .audit import AuditLog
from .error_log import ErrorLog
from .order import Order
from .product import Product
from .security_log import SecurityLog
from .user import User

__all__ = [
    "AuditLog",
    "ErrorLog",
    "Order",
    "Product",
    "SecurityLog",
    "User",
]

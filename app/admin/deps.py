"""Admin auth: X-Admin-Secret header (or admin_secret query) checked in constant time."""
import hmac

from fastapi import Header, HTTPException, Query

from app.core.config import settings


def _admin_secret_constant_time_compare(provided: str | None, expected: str | None) -> bool:
    """Timing-safe comparison; leaks no length detail."""
    p = (provided or "").encode("utf-8")
    e = (expected or "").encode("utf-8")
    if len(p) != len(e):
        # compare equal-length buffers anyway so the mismatch costs the same time
        hmac.compare_digest(e, e)
        return False
    return hmac.compare_digest(p, e)


def require_admin(
    x_admin_secret: str | None = Header(None, alias="X-Admin-Secret"),
    admin_secret: str | None = Query(None, description="Admin secret"),
) -> None:
    expected = (settings.admin_secret or "").strip()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is not configured (ADMIN_SECRET missing).")
    secret = (x_admin_secret or admin_secret) or ""
    if not _admin_secret_constant_time_compare(secret, expected):
        raise HTTPException(status_code=403, detail="Unauthorized.")

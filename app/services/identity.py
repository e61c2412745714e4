from typing import NamedTuple

from sqlmodel import Session

from app.core.security import decode_access_token
from app.models import User


class Identity(NamedTuple):
    user_id: str
    email: str
    name: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class InvalidSessionError(Exception):
    """A token was presented but does not resolve to a live user."""


def resolve_identity(db: Session, token: str | None) -> Identity | None:
    """
    No token -> None (checkout proceeds as guest).
    Token that does not decode or names a missing user -> InvalidSessionError;
    a stale session must not be mistaken for "no identity".
    """
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        raise InvalidSessionError("invalid or expired token")
    try:
        user = db.get(User, int(payload["sub"]))
    except (TypeError, ValueError):
        raise InvalidSessionError("malformed subject")
    if user is None:
        raise InvalidSessionError("user not found")
    return Identity(str(user.id), user.email or "", user.full_name or "", user.role or "user")

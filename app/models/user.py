from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.timeutil import utcnow


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    full_name: str = ""
    phone: str | None = None
    role: str = "user"  # "user" | "admin"
    created_at: datetime | None = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default_factory=utcnow)
    last_login_at: datetime | None = None

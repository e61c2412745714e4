from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    phone: str | None = None
    role: str = "user"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

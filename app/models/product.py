from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.timeutil import utcnow


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: str = Field(primary_key=True)  # e.g. "voyager"
    slug: str = Field(unique=True, index=True)
    name: str
    name_ko: str = ""
    description: str = ""
    description_ko: str = ""
    price: int  # KRW
    original_price: int | None = None  # pre-discount price
    currency: str = "KRW"
    category: str = "custom"  # explorer | voyager | royal | custom
    nights: int = 0
    days: int = 0
    ship: str = ""
    is_active: bool = True
    is_featured: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

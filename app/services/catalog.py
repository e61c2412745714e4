"""Product lookup: products table first, bundled static catalog second."""
import logging
from typing import NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.data.products import STATIC_PRODUCTS, find_static_product
from app.models import Product

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_NAME = "크루즈 상품"


class ResolvedProduct(NamedTuple):
    product_id: str
    name: str
    price: int
    source: str  # "store" | "static" | "placeholder"


def _display_name(name_ko: str | None, name: str | None) -> str:
    return (name_ko or "").strip() or (name or "").strip() or DEFAULT_PRODUCT_NAME


class ProductCatalog:
    def find_remote(self, db: Session, product_id: str) -> Product | None:
        """By id, then by slug. A store failure counts as 'not found'."""
        try:
            product = db.get(Product, product_id)
            if product is None:
                product = db.exec(select(Product).where(Product.slug == product_id)).first()
            return product
        except SQLAlchemyError as e:
            logger.warning("Product store unavailable, falling back to static catalog: %s", e)
            db.rollback()
            return None

    def resolve(self, db: Session, product_id: str | None, amount: int, quantity: int) -> ResolvedProduct:
        """
        Name and unit price to snapshot on an order. Never fails: when the
        product is unknown everywhere the unit price is derived from the
        confirmed amount.
        """
        derived_price = amount // quantity
        if product_id:
            product = self.find_remote(db, product_id)
            if product is not None:
                price = product.price if product.price and product.price > 0 else derived_price
                return ResolvedProduct(product.id, _display_name(product.name_ko, product.name), price, "store")
            static = find_static_product(product_id)
            if static is not None:
                return ResolvedProduct(
                    static["id"], _display_name(static.get("name_ko"), static.get("name")), static["price"], "static"
                )
            logger.info("Product %s not found in store or static catalog", product_id)
        return ResolvedProduct(product_id or "unknown", DEFAULT_PRODUCT_NAME, derived_price, "placeholder")

    def list_active(self, db: Session) -> list[dict]:
        try:
            rows = db.exec(
                select(Product).where(Product.is_active == True).order_by(Product.price)  # noqa: E712
            ).all()
        except SQLAlchemyError as e:
            logger.warning("Product store unavailable, serving static catalog: %s", e)
            db.rollback()
            rows = []
        if rows:
            return [r.model_dump() for r in rows]
        return [dict(p) for p in STATIC_PRODUCTS if p.get("is_active", True)]

    def get(self, db: Session, product_id: str) -> dict | None:
        product = self.find_remote(db, product_id)
        if product is not None:
            return product.model_dump()
        static = find_static_product(product_id)
        return dict(static) if static else None

    def seed(self, db: Session) -> list[str]:
        """Copies the static catalog into an empty products table. Returns seeded ids."""
        if db.exec(select(Product)).first() is not None:
            return []
        seeded = []
        for p in STATIC_PRODUCTS:
            db.add(Product(**p))
            seeded.append(p["id"])
        db.commit()
        return seeded

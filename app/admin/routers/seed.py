"""Catalog seeding and collection counts."""
from fastapi import APIRouter, Depends
from sqlmodel import Session, func, select

from app.admin.deps import require_admin
from app.api.deps import get_catalog
from app.core.database import get_db
from app.models import Order, Product, User
from app.services.catalog import ProductCatalog

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/seed")
def seed_status(db: Session = Depends(get_db)):
    return {
        "configured": True,
        "collections": {
            "products": db.exec(select(func.count()).select_from(Product)).one(),
            "users": db.exec(select(func.count()).select_from(User)).one(),
            "orders": db.exec(select(func.count()).select_from(Order)).one(),
        },
    }


@router.post("/products/seed")
def seed_products(catalog: ProductCatalog = Depends(get_catalog), db: Session = Depends(get_db)):
    seeded = catalog.seed(db)
    if not seeded:
        count = db.exec(select(func.count()).select_from(Product)).one()
        return {"success": True, "message": "Products already exist", "count": count, "products": []}
    return {"success": True, "message": f"Successfully seeded {len(seeded)} products", "products": seeded}

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from app.api.deps import get_catalog
from app.core.database import get_db
from app.services.catalog import ProductCatalog

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(catalog: ProductCatalog = Depends(get_catalog), db: Session = Depends(get_db)):
    """Active products; the bundled catalog is served while the table is empty."""
    products = catalog.list_active(db)
    return {"products": products, "count": len(products)}


@router.get("/{product_id}")
def product_detail(product_id: str, catalog: ProductCatalog = Depends(get_catalog), db: Session = Depends(get_db)):
    product = catalog.get(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="상품을 찾을 수 없습니다.")
    return product

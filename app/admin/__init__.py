"""Admin API: modular routers under /admin, guarded by X-Admin-Secret."""
from fastapi import APIRouter

from app.admin.routers import orders, seed

admin_router = APIRouter(prefix="/admin", tags=["admin"])

admin_router.include_router(orders.router, prefix="/orders", tags=["admin-orders"])
admin_router.include_router(seed.router, tags=["admin-seed"])

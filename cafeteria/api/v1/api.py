"""API v1 router composition."""

from fastapi import APIRouter

from cafeteria.api.v1.endpoints import admin, auth, inventory, kitchen, menu, orders, payments

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(kitchen.router, prefix="/kitchen", tags=["kitchen"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])

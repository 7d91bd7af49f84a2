"""
Route aggregation module.

Combines the API routers; the health router is exported separately so
main.py can mount it at the root.
"""
from fastapi import APIRouter

from app.routes.search import router as search_router
from app.routes.products import router as products_router
from app.routes.widget import router as widget_router
from app.routes.health import router as health_router

api_router = APIRouter()

api_router.include_router(search_router)
api_router.include_router(products_router)
api_router.include_router(widget_router)

__all__ = ["api_router", "health_router"]

from __future__ import annotations

from fastapi import APIRouter

from .health import router as health_router
from .discover import router as discover_router
from .final_route import router as final_route_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(discover_router)
api_router.include_router(final_route_router)

from fastapi import APIRouter

from app.branchflow.core.config import settings
from app.branchflow.routers.health import router as health_router
from app.branchflow.routers.metrics import router as metrics_router
from app.branchflow.routers.transfers import router as transfers_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["ops"])
api_router.include_router(transfers_router, tags=["transfers"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])

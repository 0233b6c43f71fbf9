"""API router aggregation."""

from fastapi import APIRouter

from leadflow.api.commissions import router as commissions_router
from leadflow.api.health import router as health_router
from leadflow.api.leads import router as leads_router
from leadflow.api.policies import router as policies_router
from leadflow.api.time_tracking import router as time_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(leads_router)
api_router.include_router(policies_router)
api_router.include_router(commissions_router)
api_router.include_router(time_router)

__all__ = ["api_router"]

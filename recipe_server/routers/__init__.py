# API routers for the recipe server
# Recipe, auth and upload routes register here alongside the monitoring routes

from fastapi import APIRouter, Depends

from recipe_server.lib.rate_limit import enforce_rate_limit

from .health import router as health_router
from .performance import router as performance_router

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])
router.include_router(health_router, tags=['health'])
router.include_router(performance_router, prefix='/admin/performance', tags=['performance'])

"""Readiness endpoint backed by the performance monitor."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from recipe_server.config import Settings
from recipe_server.lib.dependencies import get_app_settings, get_monitor
from recipe_server.lib.performance_monitor import PerformanceMonitor
from recipe_server.models.performance import HealthReport
from recipe_server.services.health_service import get_health_metrics

router = APIRouter()


@router.get('/health', response_model=HealthReport, responses={503: {'model': HealthReport}})
async def health(
  monitor: PerformanceMonitor = Depends(get_monitor),
  settings: Settings = Depends(get_app_settings),
):
  """Health summary of in-flight and completed operations.

  Returns HTTP 503 with the same document when the status is unhealthy, so
  load balancers can take the instance out of rotation.
  """
  report = get_health_metrics(monitor, version=settings.app_version)
  if report.status == 'unhealthy':
    return JSONResponse(status_code=503, content=report.model_dump())
  return report

"""FastAPI dependencies that hand application-scoped objects to endpoints."""

import secrets

from fastapi import HTTPException, Request

from recipe_server.config import Settings
from recipe_server.lib.performance_monitor import PerformanceMonitor
from recipe_server.lib.structured_logger import StructuredLogger

logger = StructuredLogger(__name__)

ADMIN_TOKEN_HEADER = 'X-Admin-Token'


def get_monitor(request: Request) -> PerformanceMonitor:
  """The performance monitor created by ``create_app``."""
  return request.app.state.monitor


def get_app_settings(request: Request) -> Settings:
  return request.app.state.settings


async def require_admin(request: Request) -> None:
  """Restrict an endpoint to holders of the admin token.

  Without a configured ADMIN_TOKEN the endpoint is open in development and
  closed otherwise.

  Raises:
      HTTPException: 401 if the token header is missing
      HTTPException: 403 if the token is wrong or admin access is disabled
  """
  settings: Settings = request.app.state.settings

  if not settings.admin_token:
    if settings.is_development:
      return
    logger.warning('Admin endpoint called but ADMIN_TOKEN is not configured', endpoint=request.url.path)
    raise HTTPException(status_code=403, detail='Administrator permission required')

  provided = request.headers.get(ADMIN_TOKEN_HEADER)
  if not provided:
    raise HTTPException(status_code=401, detail='Admin token required')

  if not secrets.compare_digest(provided, settings.admin_token):
    logger.warning('Admin access denied', endpoint=request.url.path)
    raise HTTPException(status_code=403, detail='Administrator permission required')

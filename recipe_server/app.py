"""FastAPI application for the recipe API."""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from recipe_server.config import Settings, get_settings
from recipe_server.lib.distributed_tracing import (
  CORRELATION_HEADER,
  correlation_id_from_headers,
  reset_correlation_id,
  set_correlation_id,
)
from recipe_server.lib.error_handler import (
  ClassifiedError,
  classify_error,
  handle_validation_error,
  not_found_response,
  rate_limit_response,
)
from recipe_server.lib.errors import RateLimitExceeded
from recipe_server.lib.events import OperationEventBus
from recipe_server.lib.metrics import OperationMetrics
from recipe_server.lib.metrics_middleware import api_timing_middleware
from recipe_server.lib.performance_monitor import PerformanceMonitor
from recipe_server.lib.rate_limit import FixedWindowRateLimiter
from recipe_server.lib.structured_logger import StructuredLogger
from recipe_server.models.error_response import RequestContext
from recipe_server.routers import router

logger = StructuredLogger(__name__)


def create_monitor(settings: Settings, metrics: Optional[OperationMetrics] = None) -> PerformanceMonitor:
  """Build the performance monitor shared by every request of one application."""
  return PerformanceMonitor(
    event_bus=OperationEventBus(default_queue_size=settings.event_queue_size),
    metrics=metrics,
    verbose=settings.is_development,
  )


def _request_context(request: Request) -> RequestContext:
  started_at = getattr(request.state, 'request_started_at', None)
  duration_ms = (time.monotonic() - started_at) * 1000 if started_at is not None else 0
  query = request.url.query
  return RequestContext(
    method=request.method,
    url=request.url.path + (f'?{query}' if query else ''),
    user_agent=request.headers.get('user-agent'),
    client_ip=request.client.host if request.client else None,
    user_id=getattr(request.state, 'user_id', None),
    duration_ms=duration_ms,
  )


def _error_json(classified: ClassifiedError, headers: Optional[dict] = None) -> JSONResponse:
  return JSONResponse(
    status_code=classified.status, content=classified.response.to_body(), headers=headers
  )


def create_app(
  settings: Optional[Settings] = None, monitor: Optional[PerformanceMonitor] = None
) -> FastAPI:
  """Create the API application.

  Args:
      settings: Configuration, read from the environment when omitted
      monitor: Performance monitor to use; one is created when omitted

  Returns:
      Configured FastAPI application. The monitor is available as
      ``app.state.monitor`` and is shut down with the application.
  """
  settings = settings or get_settings()
  metrics = OperationMetrics()
  if monitor is None:
    monitor = create_monitor(settings, metrics)
  elif monitor.metrics is None:
    monitor.metrics = metrics

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    logger.info(f'Recipe API starting (env={settings.app_env}, version={settings.app_version})')
    yield
    app.state.monitor.shutdown()

  app = FastAPI(
    title='Recipe API',
    description='Recipe management API with performance monitoring and structured errors',
    version=settings.app_version,
    lifespan=lifespan,
  )

  app.state.settings = settings
  app.state.monitor = monitor
  app.state.metrics_registry = monitor.metrics.registry
  app.state.rate_limiter = FixedWindowRateLimiter(
    max_requests=settings.rate_limit_max_requests, window_ms=settings.rate_limit_window_ms
  )

  app.add_middleware(
    CORSMiddleware,
    allow_origins=[
      'http://localhost:3000',
      'http://127.0.0.1:3000',
    ],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
  )

  # Registered first so that it runs inside the correlation middleware
  app.middleware('http')(api_timing_middleware)

  @app.middleware('http')
  async def add_correlation_id(request: Request, call_next):
    """Bind the request's correlation ID to the logging context.

    - Uses the X-Correlation-ID header or generates a new UUID
    - Records the request start time for error context
    - Echoes X-Correlation-ID in the response headers
    """
    correlation_id = correlation_id_from_headers(request.headers)
    token = set_correlation_id(correlation_id)
    request.state.correlation_id = correlation_id
    request.state.request_started_at = time.monotonic()
    try:
      response = await call_next(request)
    finally:
      reset_correlation_id(token)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response

  @app.get('/healthz')
  async def liveness():
    """Liveness probe (for load balancers)."""
    return {'status': 'ok'}

  @app.get('/metrics')
  async def metrics_endpoint(request: Request):
    """Prometheus exposition of operation metrics."""
    return Response(
      content=generate_latest(request.app.state.metrics_registry), media_type=CONTENT_TYPE_LATEST
    )

  # ==========================================================================
  # EXCEPTION HANDLERS
  # ==========================================================================

  @app.exception_handler(StarletteHTTPException)
  async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unmatched routes get the not-found body; other HTTP errors are classified."""
    if exc.status_code == 404 and exc.detail == 'Not Found':
      return _error_json(not_found_response(request.method, request.url.path))
    classified = classify_error(exc, production=settings.is_production)
    return _error_json(classified, headers=getattr(exc, 'headers', None))

  @app.exception_handler(RequestValidationError)
  async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a 400 whatever it contains."""
    classified = classify_error(
      exc, _request_context(request), settings.is_production, handler=handle_validation_error
    )
    return _error_json(classified)

  @app.exception_handler(RateLimitExceeded)
  async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    return _error_json(rate_limit_response(exc.window_ms))

  @app.exception_handler(Exception)
  async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: classify anything the endpoints did not handle."""
    return _error_json(classify_error(exc, _request_context(request), settings.is_production))

  app.include_router(router, prefix='/api', tags=['api'])

  return app


app = create_app()

"""
FastAPI middleware that times every API request with the performance monitor.

A timer of type ``api_request`` is started when the request enters and ended
once the response is produced. Responses with a status code below 400 count
as successes; anything else is recorded as a failure with ``HTTP <status>``
as error details.
"""

from fastapi import Request

from recipe_server.lib.structured_logger import StructuredLogger, log_request
from recipe_server.lib.timing import generate_operation_id

logger = StructuredLogger(__name__)

API_REQUEST_TYPE = 'api_request'
EXCLUDED_PATHS = ('/healthz', '/metrics')
RESPONSE_TIME_HEADER = 'X-Response-Time-Ms'


async def api_timing_middleware(request: Request, call_next):
    """
    Time the request with ``request.app.state.monitor``.

    The running timer is exposed as ``request.state.performance_timer``.
    Requests slower than ``settings.slow_request_ms`` log a warning and, in
    development mode, the duration is returned in the X-Response-Time-Ms
    header. An exception raised downstream ends the timer as failed and is
    re-raised for the exception handlers.

    Args:
        request: FastAPI request object
        call_next: Next middleware or endpoint in chain

    Returns:
        Response from the endpoint
    """
    endpoint = request.url.path
    if endpoint in EXCLUDED_PATHS:
        return await call_next(request)

    monitor = request.app.state.monitor
    settings = request.app.state.settings
    method = request.method

    operation_id = generate_operation_id(f'api_{method}')
    metadata = {
        'method': method,
        'url': str(request.url.path) + (f'?{request.url.query}' if request.url.query else ''),
        'user_agent': request.headers.get('user-agent'),
        'content_length': request.headers.get('content-length'),
    }
    request.state.performance_timer = monitor.start_timer(operation_id, API_REQUEST_TYPE, metadata)

    try:
        response = await call_next(request)
    except Exception as e:
        monitor.end_timer(operation_id, False, str(e) or type(e).__name__)
        raise

    status_code = response.status_code
    success = status_code < 400
    completed = monitor.end_timer(operation_id, success, None if success else f'HTTP {status_code}')
    if completed is None:
        # Timer was dropped by a reset while the request was in flight
        return response

    duration_ms = completed.duration_ms
    if duration_ms > settings.slow_request_ms:
        logger.warning(
            f'[PERF] Slow request: {method} {endpoint} took {duration_ms:.0f}ms',
            endpoint=endpoint,
            method=method,
            status_code=status_code,
            duration_ms=duration_ms,
        )

    if settings.is_development:
        response.headers[RESPONSE_TIME_HEADER] = f'{duration_ms:.1f}'
        log_request(endpoint=endpoint, method=method, status_code=status_code, duration_ms=duration_ms)

    return response

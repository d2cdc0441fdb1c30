"""Error classification for API responses.

Translates any exception raised while handling a request into an HTTP status
code and a structured, user-safe body. Classification is stateless and never
raises, mutates or re-raises the error it is given. Full error details are
always logged server-side under a fresh ``error_id`` that is also returned to
the client, so that a user-visible failure can be matched to its log line.

Dispatch order (first match wins):
    storage -> authentication -> validation -> upload -> HTTP status -> generic
"""

from typing import Any, Callable, Mapping, NamedTuple, Optional
from uuid import uuid4

from recipe_server.lib.errors import AuthenticationError, StorageError
from recipe_server.lib.structured_logger import StructuredLogger
from recipe_server.models.error_response import ErrorResponse, PerformanceInfo, RequestContext

logger = StructuredLogger(__name__)

SLOW_ERROR_REQUEST_MS = 5000
DEFAULT_RATE_LIMIT_WINDOW_MS = 60000

AUTH_TERMS = ('auth', 'token', 'permission', 'unauthorized', 'forbidden')

# Storage condition name -> (status, message, details)
STORAGE_ERRORS = {
    'ConditionalCheckFailedException': (
        409,
        'Operation failed due to condition check',
        'The item may not exist or you may not have permission to modify it',
    ),
    'ValidationException': (
        400,
        'Invalid request parameters',
        'The request could not be processed by the database',
    ),
    'ResourceNotFoundException': (
        404,
        'Resource not found',
        'The requested item or table does not exist',
    ),
    'ProvisionedThroughputExceededException': (
        429,
        'Rate limit exceeded',
        'Please reduce request frequency and try again',
    ),
    'ThrottlingException': (
        429,
        'Rate limit exceeded',
        'Please reduce request frequency and try again',
    ),
    'ServiceUnavailableException': (
        503,
        'Service temporarily unavailable',
        'Please try again in a few moments',
    ),
    'InternalServerError': (
        503,
        'Service temporarily unavailable',
        'Please try again in a few moments',
    ),
}

UNKNOWN_STORAGE_ERROR = (500, 'Database operation failed', 'An unexpected database error occurred')


class ClassifiedError(NamedTuple):
    """HTTP status code and body for a classified error."""

    status: int
    response: ErrorResponse


def new_error_id() -> str:
    return str(uuid4())


def create_error_response(
    message: str, details: Any = None, error_id: Optional[str] = None
) -> ErrorResponse:
    """Build the standard error body."""
    return ErrorResponse(message=message, details=details, error_id=error_id)


# ============================================================================
# Error inspection
# ============================================================================


def _error_name(error: BaseException) -> str:
    """Storage-style error name: ``name`` attribute, botocore error code, or class name."""
    name = getattr(error, 'name', None)
    if isinstance(name, str) and name:
        return name
    response = getattr(error, 'response', None)
    if isinstance(response, Mapping):
        code = response.get('Error', {}).get('Code')
        if code:
            return code
    return type(error).__name__


def _error_message(error: BaseException) -> str:
    detail = getattr(error, 'detail', None)
    if isinstance(detail, str):
        return detail
    return str(error)


def _transport_metadata(error: BaseException) -> Optional[Mapping[str, Any]]:
    """Status code and request id reported by the storage transport, if any."""
    metadata = getattr(error, 'metadata', None)
    if isinstance(metadata, Mapping) and (
        'http_status_code' in metadata or 'request_id' in metadata
    ):
        return metadata

    response = getattr(error, 'response', None)
    if isinstance(response, Mapping) and isinstance(response.get('ResponseMetadata'), Mapping):
        response_metadata = response['ResponseMetadata']
        return {
            'http_status_code': response_metadata.get('HTTPStatusCode'),
            'request_id': response_metadata.get('RequestId'),
        }
    return None


def is_storage_error(error: BaseException) -> bool:
    if isinstance(error, StorageError):
        return True
    name = _error_name(error)
    if name in STORAGE_ERRORS or 'DynamoDB' in name:
        return True
    return _transport_metadata(error) is not None


def is_auth_error(error: BaseException) -> bool:
    if isinstance(error, AuthenticationError):
        return True
    message = _error_message(error).lower()
    return any(term in message for term in AUTH_TERMS)


def is_validation_error(error: BaseException) -> bool:
    if _error_name(error).endswith('ValidationError') or type(error).__name__.endswith(
        'ValidationError'
    ):
        return True
    return 'validation' in _error_message(error).lower()


def _upload_code(error: BaseException) -> Optional[str]:
    code = getattr(error, 'code', None)
    if isinstance(code, str) and code.startswith('LIMIT_'):
        return code
    return None


def _explicit_status(error: BaseException) -> Optional[int]:
    for attribute in ('status_code', 'status'):
        status = getattr(error, attribute, None)
        if isinstance(status, int) and not isinstance(status, bool) and 100 <= status <= 599:
            return status
    return None


# ============================================================================
# Classifiers
# ============================================================================


def handle_storage_error(error: BaseException) -> ClassifiedError:
    """Map a storage-layer error to a status code without exposing its internals."""
    error_id = new_error_id()
    name = _error_name(error)
    metadata = _transport_metadata(error) or {}

    logger.error(
        f'[ERROR {error_id}] Storage error: {name}',
        exc_info=error,
        error_id=error_id,
        error_type=name,
        error_message=str(error),
        transport_status_code=metadata.get('http_status_code'),
        transport_request_id=metadata.get('request_id'),
    )

    status, message, details = STORAGE_ERRORS.get(name, UNKNOWN_STORAGE_ERROR)
    return ClassifiedError(status, create_error_response(message, details, error_id))


def handle_auth_error(error: BaseException) -> ClassifiedError:
    """Map an authentication or authorization failure to 401 or 403."""
    error_id = new_error_id()
    message = _error_message(error)
    logger.error(
        f'[ERROR {error_id}] Auth error: {message}',
        exc_info=error,
        error_id=error_id,
        error_type=type(error).__name__,
        error_message=message,
    )

    lowered = message.lower()
    if 'token' in lowered or 'unauthorized' in lowered:
        return ClassifiedError(
            401,
            create_error_response(
                'Authentication required', 'Please provide a valid authentication token', error_id
            ),
        )

    if 'permission' in lowered or 'forbidden' in lowered:
        return ClassifiedError(
            403,
            create_error_response(
                'Insufficient permissions',
                'You do not have permission to access this resource',
                error_id,
            ),
        )

    return ClassifiedError(401, create_error_response('Authentication failed', message, error_id))


def handle_validation_error(error: BaseException) -> ClassifiedError:
    error_id = new_error_id()
    message = _error_message(error)
    logger.error(
        f'[ERROR {error_id}] Validation error: {message}',
        exc_info=error,
        error_id=error_id,
        error_type=type(error).__name__,
        error_message=message,
    )
    return ClassifiedError(400, create_error_response('Invalid input data', message, error_id))


def handle_upload_error(error: BaseException) -> ClassifiedError:
    """Map an upload limit violation (``code`` starting with LIMIT_) to 413 or 400."""
    error_id = new_error_id()
    message = _error_message(error)
    code = getattr(error, 'code', None)
    logger.error(
        f'[ERROR {error_id}] Upload error: {message}',
        exc_info=error,
        error_id=error_id,
        error_type=code,
        error_message=message,
    )

    if code == 'LIMIT_FILE_SIZE':
        return ClassifiedError(
            413,
            create_error_response(
                'File too large', 'The uploaded file exceeds the maximum allowed size', error_id
            ),
        )

    if code == 'LIMIT_FILE_COUNT':
        return ClassifiedError(
            400,
            create_error_response(
                'Too many files', 'You can only upload one file at a time', error_id
            ),
        )

    return ClassifiedError(400, create_error_response('File upload failed', message, error_id))


def handle_http_error(error: BaseException, status: int) -> ClassifiedError:
    """Pass through an error that already carries an HTTP status."""
    error_id = new_error_id()
    message = _error_message(error) or 'An error occurred'
    log = logger.error if status >= 500 else logger.warning
    log(
        f'[ERROR {error_id}] HTTP {status}: {message}',
        exc_info=error,
        error_id=error_id,
        error_type=type(error).__name__,
        error_message=message,
        status_code=status,
    )
    return ClassifiedError(
        status, create_error_response(message, getattr(error, 'details', None), error_id)
    )


def handle_unexpected_error(error: BaseException, production: bool = True) -> ClassifiedError:
    """Last-resort classification: 500, details only outside production."""
    error_id = new_error_id()
    logger.error(
        f'[ERROR {error_id}] Unhandled error: {error}',
        exc_info=error,
        error_id=error_id,
        error_type=type(error).__name__,
        error_message=str(error),
    )
    return ClassifiedError(
        500,
        create_error_response(
            'Internal server error', None if production else str(error), error_id
        ),
    )


def classify_error(
    error: BaseException,
    context: Optional[RequestContext] = None,
    production: bool = True,
    handler: Optional[Callable[[BaseException], ClassifiedError]] = None,
) -> ClassifiedError:
    """Classify ``error`` into ``(status, response)``.

    Args:
        error: The exception raised while handling a request
        context: Request details to log alongside the error
        production: When False, unclassified errors expose their message as details
        handler: Branch to use instead of the message-based dispatch, for callers
            that already know the kind of error

    Returns:
        ClassifiedError with the HTTP status and the ErrorResponse body
    """
    if context is not None:
        logger.error(
            f'[ERROR] Request failed: {context.method} {context.url}',
            method=context.method,
            url=context.url,
            user_agent=context.user_agent,
            client_ip=context.client_ip,
            user_id=context.user_id,
            duration_ms=context.duration_ms,
            error_message=str(error),
        )

    if handler is not None:
        classified = handler(error)
    elif is_storage_error(error):
        classified = handle_storage_error(error)
    elif is_auth_error(error):
        classified = handle_auth_error(error)
    elif is_validation_error(error):
        classified = handle_validation_error(error)
    elif _upload_code(error) is not None:
        classified = handle_upload_error(error)
    elif (status := _explicit_status(error)) is not None:
        classified = handle_http_error(error, status)
    else:
        classified = handle_unexpected_error(error, production=production)

    if context is not None and context.duration_ms > SLOW_ERROR_REQUEST_MS:
        logger.warning(
            f'[SLOW REQUEST] {context.method} {context.url} took {context.duration_ms:.0f}ms',
            method=context.method,
            url=context.url,
            duration_ms=context.duration_ms,
        )
        classified.response.performance = PerformanceInfo(duration_ms=context.duration_ms)

    return classified


# ============================================================================
# Standalone responders
# ============================================================================


def not_found_response(method: str, path: str) -> ClassifiedError:
    """404 body for a request that matched no route."""
    return ClassifiedError(
        404,
        create_error_response(
            'Endpoint not found', f'{method} {path} is not a valid endpoint', new_error_id()
        ),
    )


def rate_limit_response(window_ms: Optional[int] = None) -> ClassifiedError:
    """429 body stating the retry window in milliseconds."""
    window_ms = window_ms or DEFAULT_RATE_LIMIT_WINDOW_MS
    return ClassifiedError(
        429,
        create_error_response(
            'Rate limit exceeded', f'Too many requests. Try again in {window_ms}ms', new_error_id()
        ),
    )

"""Structured Logger with JSON Formatting.

Emits one JSON object per log line so that operation timings and error
classifications can be searched by field (operation_id, error_id, ...).
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from recipe_server.lib.distributed_tracing import get_correlation_id

# Extra fields copied from a log record into the JSON document
CONTEXT_FIELDS = (
    'operation_id',
    'operation_type',
    'duration_ms',
    'threshold_ms',
    'success',
    'error_details',
    'metadata',
    'error_id',
    'error_type',
    'error_message',
    'transport_status_code',
    'transport_request_id',
    'status_code',
    'endpoint',
    'method',
    'url',
    'user_agent',
    'client_ip',
    'user_id',
    'window_ms',
    'dropped',
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'request_id': get_correlation_id(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_data['exception'] = {
                'type': exc_type.__name__ if exc_type else None,
                'message': str(exc_value) if exc_value else None,
                'traceback': self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Structured logger with JSON formatting.

    Usage:
        logger = StructuredLogger(__name__)
        logger.warning('Slow operation', operation_id='q-1', duration_ms=812.5)
        logger.error('Unhandled error', exc_info=exc, error_id=error_id)
    """

    def __init__(self, name: str):
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
        """
        self.logger = logging.getLogger(name)

        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Re-importing a module must not stack handlers
        self.logger.handlers.clear()

        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        self.logger.addHandler(handler)

        self.logger.propagate = False

    def info(self, message: str, **extra: Any) -> None:
        """Log INFO level message.

        Args:
            message: Log message
            **extra: Additional context (operation_id, duration_ms, etc.)
        """
        self.logger.info(message, extra=extra)

    def warning(self, message: str, exc_info: bool | BaseException = False, **extra: Any) -> None:
        """Log WARNING level message.

        Args:
            message: Log message
            exc_info: Include exception traceback
            **extra: Additional context
        """
        self.logger.warning(message, exc_info=exc_info, extra=extra)

    def error(self, message: str, exc_info: bool | BaseException = False, **extra: Any) -> None:
        """Log ERROR level message.

        Args:
            message: Log message
            exc_info: True for the exception being handled, or an exception instance
            **extra: Additional context
        """
        self.logger.error(message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **extra: Any) -> None:
        """Log DEBUG level message."""
        self.logger.debug(message, extra=extra)


def log_request(endpoint: str, method: str, status_code: int, duration_ms: float) -> None:
    """Log a finished API request with its duration.

    Args:
        endpoint: API endpoint path
        method: HTTP method
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    request_logger.info(
        f'{method} {endpoint}',
        endpoint=endpoint,
        method=method,
        status_code=status_code,
        duration_ms=duration_ms,
    )


request_logger = StructuredLogger('recipe_server.requests')

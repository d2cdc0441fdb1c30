"""Request correlation IDs.

Every request carries a correlation ID (from the X-Correlation-ID header or
freshly generated) that is attached to each log line emitted while the
request is handled. It is unrelated to the ``errorId`` of error responses.
"""

import contextvars
from typing import Mapping
from uuid import uuid4

CORRELATION_HEADER = 'X-Correlation-ID'
NO_REQUEST_ID = 'no-request-id'

# Async-safe; each request task sees its own value
correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
  'request_id', default=NO_REQUEST_ID
)


def get_correlation_id() -> str:
  """Return the current request's correlation ID, or 'no-request-id'."""
  return correlation_id.get()


def set_correlation_id(request_id: str) -> contextvars.Token:
  """Bind a correlation ID to the current context.

  Returns:
      Token that can be handed to ``reset_correlation_id``
  """
  return correlation_id.set(request_id)


def correlation_id_from_headers(headers: Mapping[str, str]) -> str:
  """Use the caller's X-Correlation-ID when present, else a new UUID4."""
  return headers.get(CORRELATION_HEADER) or str(uuid4())


def reset_correlation_id(token: contextvars.Token | None = None) -> None:
  """Restore the previous correlation ID, or the default when no token is given."""
  if token is not None:
    correlation_id.reset(token)
  else:
    correlation_id.set(NO_REQUEST_ID)

"""Exceptions raised by the API and its collaborators.

The error classifier does not require these types: it also recognises
foreign exceptions by name, message, ``code`` or transport metadata. These
classes give in-house code a precise way to land in the right branch.
"""

from typing import Optional


class RecipeServerError(Exception):
  """Base class for application errors."""

  pass


class StorageError(RecipeServerError):
  """Raised by the storage layer.

  Args:
      name: Storage condition name (e.g. "ConditionalCheckFailedException")
      message: Human-readable description, logged server-side only
      http_status_code: Status code reported by the storage transport
      request_id: Request id reported by the storage transport
  """

  def __init__(
    self,
    name: str,
    message: str = '',
    http_status_code: Optional[int] = None,
    request_id: Optional[str] = None,
  ):
    super().__init__(message or name)
    self.name = name
    self.metadata = {'http_status_code': http_status_code, 'request_id': request_id}


class AuthenticationError(RecipeServerError):
  """Raised when a caller cannot be authenticated or authorized."""

  pass


class ValidationError(RecipeServerError):
  """Raised when request input fails validation."""

  pass


class UploadLimitError(RecipeServerError):
  """Raised when an upload breaks a configured limit.

  Args:
      code: Limit code, e.g. "LIMIT_FILE_SIZE" or "LIMIT_FILE_COUNT"
      message: Human-readable description
  """

  def __init__(self, code: str, message: str = ''):
    super().__init__(message or code)
    self.code = code


class RateLimitExceeded(RecipeServerError):
  """Raised when a client exceeds the request rate limit."""

  def __init__(self, window_ms: int = 60000):
    super().__init__(f'Rate limit exceeded for a {window_ms}ms window')
    self.window_ms = window_ms

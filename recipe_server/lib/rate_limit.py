"""Per-client fixed-window rate limiting.

This is NOT distributed - each application instance keeps its own counters
in memory.
"""

import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import Request

from recipe_server.lib.errors import RateLimitExceeded
from recipe_server.lib.structured_logger import StructuredLogger

logger = StructuredLogger(__name__)

# Expired windows are purged once this many clients are tracked
MAX_TRACKED_CLIENTS = 10000


class FixedWindowRateLimiter:
  """Allow ``max_requests`` per client within each ``window_ms`` window.

  A ``max_requests`` of 0 disables limiting.
  """

  def __init__(self, max_requests: int, window_ms: int = 60000, clock: Callable[[], float] = time.monotonic):
    self.max_requests = max_requests
    self.window_ms = window_ms
    self._clock = clock
    self._windows: Dict[str, Tuple[float, int]] = {}
    self._lock = threading.Lock()

  @property
  def enabled(self) -> bool:
    return self.max_requests > 0

  def hit(self, key: str) -> bool:
    """Count a request for ``key``. Returns False once the limit is exceeded."""
    if not self.enabled:
      return True

    now = self._clock()
    window_seconds = self.window_ms / 1000
    with self._lock:
      if len(self._windows) >= MAX_TRACKED_CLIENTS:
        self._purge(now, window_seconds)

      window_start, count = self._windows.get(key, (now, 0))
      if now - window_start >= window_seconds:
        window_start, count = now, 0
      count += 1
      self._windows[key] = (window_start, count)

    return count <= self.max_requests

  def _purge(self, now: float, window_seconds: float) -> None:
    expired = [key for key, (start, _) in self._windows.items() if now - start >= window_seconds]
    for key in expired:
      del self._windows[key]

  def reset(self) -> None:
    with self._lock:
      self._windows.clear()


async def enforce_rate_limit(request: Request) -> None:
  """FastAPI dependency that rejects clients over the limit.

  Raises:
      RateLimitExceeded: rendered as 429 by the application's exception handler
  """
  limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
  client = request.client.host if request.client else 'unknown'
  if not limiter.hit(client):
    logger.warning(
      f'Rate limit exceeded for {client}',
      client_ip=client,
      endpoint=request.url.path,
      window_ms=limiter.window_ms,
    )
    raise RateLimitExceeded(limiter.window_ms)

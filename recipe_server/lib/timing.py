"""Helpers that bracket a unit of work with a monitor timer.

The timer is ended as successful when the work returns and as failed when it
raises; the exception always propagates unchanged to the caller.
"""

import inspect
import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Iterator, Optional, TypeVar
from uuid import uuid4

from recipe_server.lib.performance_monitor import PerformanceMonitor, TimerRecord

T = TypeVar('T')


def generate_operation_id(prefix: str) -> str:
  """Unique operation id: ``{prefix}_{epoch_ms}_{9 random chars}``."""
  return f'{prefix}_{int(time.time() * 1000)}_{uuid4().hex[:9]}'


def _error_details(exc: BaseException) -> str:
  return str(exc) or type(exc).__name__


def run_timed(
  monitor: PerformanceMonitor,
  operation_type: str,
  operation: Callable[[], T],
  metadata: Optional[Dict[str, Any]] = None,
) -> T:
  """Run ``operation`` under a timer of type ``operation_type``.

  Usage:
      recipe = run_timed(monitor, 'dynamodb_query', lambda: table.get_item(Key=key))
  """
  operation_id = generate_operation_id(operation_type)
  monitor.start_timer(operation_id, operation_type, metadata)
  try:
    result = operation()
  except BaseException as exc:
    monitor.end_timer(operation_id, False, _error_details(exc))
    raise
  monitor.end_timer(operation_id, True)
  return result


async def run_timed_async(
  monitor: PerformanceMonitor,
  operation_type: str,
  operation: Callable[[], Awaitable[T]],
  metadata: Optional[Dict[str, Any]] = None,
) -> T:
  """Coroutine variant of ``run_timed``. Cancellation is recorded as a failure."""
  operation_id = generate_operation_id(operation_type)
  monitor.start_timer(operation_id, operation_type, metadata)
  try:
    result = await operation()
  except BaseException as exc:
    monitor.end_timer(operation_id, False, _error_details(exc))
    raise
  monitor.end_timer(operation_id, True)
  return result


def timed(monitor: PerformanceMonitor, operation_type: str, capture_args: int = 2):
  """Wrap a function so that every call is timed.

  Works for plain functions and coroutine functions. The ``repr`` of the first
  ``capture_args`` positional arguments is kept as timer metadata; keyword
  arguments are never captured.

  Usage:
      get_recipe = timed(monitor, 'dynamodb_query')(repository.get_recipe)
  """

  def wrap(func: Callable) -> Callable:
    def call_metadata(args: tuple) -> Dict[str, Any]:
      return {'function': func.__qualname__, 'args': [repr(arg) for arg in args[:capture_args]]}

    if inspect.iscoroutinefunction(func):

      @wraps(func)
      async def async_wrapper(*args, **kwargs):
        return await run_timed_async(
          monitor, operation_type, lambda: func(*args, **kwargs), call_metadata(args)
        )

      return async_wrapper

    @wraps(func)
    def wrapper(*args, **kwargs):
      return run_timed(monitor, operation_type, lambda: func(*args, **kwargs), call_metadata(args))

    return wrapper

  return wrap


@contextmanager
def timed_block(
  monitor: PerformanceMonitor, operation_type: str, metadata: Optional[Dict[str, Any]] = None
) -> Iterator[TimerRecord]:
  """Context manager form of ``run_timed``.

  Usage:
      with timed_block(monitor, 'text_parsing', {'source': filename}):
          recipe = parse_recipe(text)
  """
  operation_id = generate_operation_id(operation_type)
  timer = monitor.start_timer(operation_id, operation_type, metadata)
  try:
    yield timer
  except BaseException as exc:
    monitor.end_timer(operation_id, False, _error_details(exc))
    raise
  monitor.end_timer(operation_id, True)

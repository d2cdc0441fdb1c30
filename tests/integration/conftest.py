"""Integration test fixtures for concurrent monitor and application scenarios.

These tests use the real monotonic clock and real threads, so they exercise
the monitor's locking rather than the fake-clock paths the unit tests cover.
"""

import pytest
from fastapi.testclient import TestClient

from recipe_server.app import create_app
from recipe_server.config import Settings
from recipe_server.lib.events import OperationEventBus
from recipe_server.lib.metrics import OperationMetrics
from recipe_server.lib.performance_monitor import PerformanceMonitor

# ============================================================================
# Concurrency Fixtures
# ============================================================================

WORKER_COUNT = 8


@pytest.fixture
def worker_count():
  return WORKER_COUNT


@pytest.fixture
def large_bus_monitor():
  """Real-clock monitor whose subscribers can buffer every test event."""
  monitor = PerformanceMonitor(
    event_bus=OperationEventBus(default_queue_size=5000), metrics=OperationMetrics()
  )
  yield monitor
  monitor.shutdown()


@pytest.fixture
def live_client(large_bus_monitor):
  """Production-mode client on a real-clock monitor."""
  settings = Settings(app_env='production', admin_token='integration-token')
  app = create_app(settings=settings, monitor=large_bus_monitor)
  with TestClient(app, raise_server_exceptions=False) as client:
    yield client

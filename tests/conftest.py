"""Shared test fixtures and utilities for all tests.

Provides fake clocks, monitor instances and FastAPI apps configured for
testing. Unit, contract and integration tests all draw from here.
"""

import sys
from pathlib import Path

# Ensure the project root wins over any installed copy
project_root = str(Path(__file__).parent.parent.absolute())
if project_root not in sys.path:
    sys.path.insert(0, project_root)
elif sys.path[0] != project_root:
    sys.path.remove(project_root)
    sys.path.insert(0, project_root)

import pytest
from fastapi.testclient import TestClient

from recipe_server.app import create_app
from recipe_server.config import Settings
from recipe_server.lib import error_handler, performance_monitor
from recipe_server.lib.events import OperationEventBus
from recipe_server.lib.metrics import OperationMetrics
from recipe_server.lib.performance_monitor import PerformanceMonitor


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000


# ============================================================================
# Monitor Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_bus():
    return OperationEventBus(default_queue_size=100)


@pytest.fixture
def monitor(clock, event_bus):
    """Monitor driven by a fake clock, with its own Prometheus registry."""
    monitor = PerformanceMonitor(event_bus=event_bus, metrics=OperationMetrics(), clock=clock)
    yield monitor
    monitor.shutdown()


@pytest.fixture
def real_clock_monitor():
    monitor = PerformanceMonitor(metrics=OperationMetrics())
    yield monitor
    monitor.shutdown()


# ============================================================================
# Settings and Application Fixtures
# ============================================================================

@pytest.fixture
def production_settings():
    return Settings(app_env='production', admin_token='test-admin-token', app_version='9.9.9')


@pytest.fixture
def development_settings():
    return Settings(app_env='development')


@pytest.fixture
def admin_headers():
    return {'X-Admin-Token': 'test-admin-token'}


@pytest.fixture
def app(production_settings, monitor):
    """Production-mode app sharing the fake-clock monitor."""
    return create_app(settings=production_settings, monitor=monitor)


@pytest.fixture
def client(app):
    """Test client that returns 500 responses instead of re-raising."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def dev_app(development_settings, monitor):
    return create_app(settings=development_settings, monitor=monitor)


@pytest.fixture
def dev_client(dev_app):
    return TestClient(dev_app, raise_server_exceptions=False)


# ============================================================================
# Log Capture
# ============================================================================

def _capture(caplog, *structured_loggers):
    for structured in structured_loggers:
        structured.logger.addHandler(caplog.handler)
    return caplog


@pytest.fixture
def monitor_logs(caplog):
    """Capture the performance monitor's logs (its logger does not propagate)."""
    yield _capture(caplog, performance_monitor.logger)
    performance_monitor.logger.logger.removeHandler(caplog.handler)


@pytest.fixture
def error_logs(caplog):
    """Capture the error classifier's logs."""
    yield _capture(caplog, error_handler.logger)
    error_handler.logger.logger.removeHandler(caplog.handler)


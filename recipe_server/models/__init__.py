"""Models package for API and monitoring snapshots."""

from recipe_server.models.error_response import ErrorResponse, PerformanceInfo, RequestContext
from recipe_server.models.performance import (
    ActiveOperation,
    CompletedOperation,
    HealthReport,
    StatsSnapshot,
)

__all__ = [
    'ActiveOperation',
    'CompletedOperation',
    'ErrorResponse',
    'HealthReport',
    'PerformanceInfo',
    'RequestContext',
    'StatsSnapshot',
]

"""Health summary built from the performance monitor's statistics."""

from typing import List

from recipe_server.lib.performance_monitor import PerformanceMonitor
from recipe_server.models.error_response import utc_timestamp
from recipe_server.models.performance import HealthPerformance, HealthReport

LONG_RUNNING_OPERATION_MS = 30000
MAX_ACTIVE_OPERATIONS = 10


def get_health_metrics(monitor: PerformanceMonitor, version: str = '1.0.0') -> HealthReport:
    """Summarize monitor state into a health document.

    Status rules:
    - unhealthy: an active operation has been running for 30 seconds or more
    - warning: more than 10 active operations, or slow queries recorded
    - healthy: otherwise

    Args:
        monitor: Performance monitor to read from
        version: Application version reported in the document

    Returns:
        HealthReport ready to be serialized
    """
    stats = monitor.get_stats()
    active_operations = monitor.get_active_operations()

    warnings: List[str] = []
    if len(active_operations) > MAX_ACTIVE_OPERATIONS:
        warnings.append('High number of active operations')
    if stats.slow_query_stats:
        warnings.append('Slow queries detected')

    status = 'warning' if warnings else 'healthy'
    if any(op.duration_ms >= LONG_RUNNING_OPERATION_MS for op in active_operations):
        status = 'unhealthy'
        warnings.append('Long-running operation detected')

    return HealthReport(
        status=status,
        timestamp=utc_timestamp(),
        uptime_ms=stats.uptime_ms,
        performance=HealthPerformance(
            total_operations=stats.total_operations,
            active_operations=len(active_operations),
            operation_stats=stats.operation_stats,
            slow_queries=len(stats.slow_query_stats),
        ),
        warnings=warnings,
        version=version,
    )

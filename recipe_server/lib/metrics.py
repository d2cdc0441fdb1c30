"""Prometheus-compatible metrics for timed operations.

Each application owns its own ``CollectorRegistry`` so that several
applications (or test cases) in one process never collide on metric names.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram


class OperationMetrics:
    """Prometheus collectors fed by the performance monitor."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Create collectors on ``registry`` (a fresh registry when omitted)."""
        self.registry = registry if registry is not None else CollectorRegistry()

        self.operations_total = Counter(
            'operations_total',
            'Total completed operations',
            ['operation_type', 'outcome'],
            registry=self.registry,
        )

        self.operation_duration_seconds = Histogram(
            'operation_duration_seconds',
            'Operation duration in seconds',
            ['operation_type'],
            buckets=[0.01, 0.05, 0.1, 0.5, 0.8, 1.0, 2.0, 3.0, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        self.slow_operations_total = Counter(
            'slow_operations_total',
            'Operations that exceeded their slow threshold',
            ['operation_type'],
            registry=self.registry,
        )

        self.active_operations = Gauge(
            'active_operations',
            'Operations whose timer is still running',
            registry=self.registry,
        )

    def record_operation(self, operation_type: str, success: bool, duration_ms: float, slow: bool):
        """Record one completed operation.

        Args:
            operation_type: Operation category
            success: Whether the operation succeeded
            duration_ms: Operation duration in milliseconds
            slow: Whether the duration exceeded the type's threshold
        """
        outcome = 'success' if success else 'error'
        self.operations_total.labels(operation_type=operation_type, outcome=outcome).inc()
        self.operation_duration_seconds.labels(operation_type=operation_type).observe(
            duration_ms / 1000
        )
        if slow:
            self.slow_operations_total.labels(operation_type=operation_type).inc()

    def set_active_operations(self, count: int):
        """Update the active operations gauge."""
        self.active_operations.set(count)

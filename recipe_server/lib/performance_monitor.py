"""Operation timer registry.

Tracks in-flight operations (database calls, API requests, file parsing)
keyed by a caller-chosen id. Ending a timer computes its duration, updates
per-type success/error counters, keeps a bounded history of slow operations
and publishes the completed record on the monitor's event bus.

The monitor is an explicitly constructed object. The application creates one
at startup, hands it to collaborators, and calls ``shutdown()`` on exit.
FastAPI runs sync endpoints in a thread pool, so all shared state is guarded
by a lock.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from recipe_server.lib.events import OperationEventBus
from recipe_server.lib.metrics import OperationMetrics
from recipe_server.lib.structured_logger import StructuredLogger
from recipe_server.models.performance import (
    ActiveOperation,
    CompletedOperation,
    OperationTypeStats,
    SlowQueryStats,
    StatsSnapshot,
)

logger = StructuredLogger(__name__)

DEFAULT_SLOW_THRESHOLD_MS = 1000

SLOW_THRESHOLDS_MS = MappingProxyType({
    'dynamodb_query': 500,
    'dynamodb_scan': 1000,
    'dynamodb_batch': 800,
    'api_request': 2000,
    'cache_operation': 50,
    'file_upload': 5000,
    'text_parsing': 3000,
})

SLOW_QUERY_HISTORY_LIMIT = 100
RECENT_SLOW_QUERY_COUNT = 10


def get_slow_threshold(operation_type: str) -> int:
    """Slow threshold in milliseconds for ``operation_type``."""
    return SLOW_THRESHOLDS_MS.get(operation_type, DEFAULT_SLOW_THRESHOLD_MS)


@dataclass
class TimerRecord:
    """An operation whose timer is running."""

    id: str
    type: str
    start_time: float
    metadata: Dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default=0.0, repr=False)


class PerformanceMonitor:
    """In-memory registry of operation timers and their aggregate statistics.

    Args:
        event_bus: Channel that receives every CompletedOperation
        metrics: Prometheus collectors to feed, if any
        clock: Monotonic clock in seconds, used for durations
        wall_clock: Epoch clock in seconds, used for timestamps
        history_limit: Number of slow operations kept
        verbose: Log every completed operation, not only slow ones
    """

    def __init__(
        self,
        event_bus: Optional[OperationEventBus[CompletedOperation]] = None,
        metrics: Optional[OperationMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        history_limit: int = SLOW_QUERY_HISTORY_LIMIT,
        verbose: bool = False,
    ):
        self.events = event_bus if event_bus is not None else OperationEventBus()
        self.metrics = metrics
        self.verbose = verbose
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        self._active: Dict[str, TimerRecord] = {}
        self._operation_counts: Dict[Tuple[str, str], int] = {}
        self._slow_queries: Deque[CompletedOperation] = deque(maxlen=history_limit)
        self._started_at = clock()
        self.closed = False

    def get_slow_threshold(self, operation_type: str) -> int:
        return get_slow_threshold(operation_type)

    def start_timer(
        self, operation_id: str, operation_type: str, metadata: Optional[Dict[str, Any]] = None
    ) -> TimerRecord:
        """Start timing an operation.

        A second start with the same id replaces the first one.
        """
        timer = TimerRecord(
            id=operation_id,
            type=operation_type,
            start_time=self._wall_clock() * 1000,
            metadata=dict(metadata or {}),
            started_at=self._clock(),
        )
        with self._lock:
            self._active[operation_id] = timer
            active_count = len(self._active)

        if self.metrics is not None:
            self.metrics.set_active_operations(active_count)
        return timer

    def end_timer(
        self, operation_id: str, success: bool = True, error_details: Optional[str] = None
    ) -> Optional[CompletedOperation]:
        """End timing an operation and record its outcome.

        Returns:
            The completed record, or None when no timer is running for ``operation_id``
        """
        threshold = None
        with self._lock:
            timer = self._active.pop(operation_id, None)
            if timer is not None:
                duration_ms = max(0.0, (self._clock() - timer.started_at) * 1000)
                result = CompletedOperation(
                    id=timer.id,
                    type=timer.type,
                    start_time=timer.start_time,
                    end_time=timer.start_time + duration_ms,
                    duration_ms=duration_ms,
                    success=success,
                    error_details=None if success else error_details,
                    metadata=timer.metadata,
                )

                count_key = (timer.type, 'success' if success else 'error')
                self._operation_counts[count_key] = self._operation_counts.get(count_key, 0) + 1

                threshold = get_slow_threshold(timer.type)
                if duration_ms > threshold:
                    self._slow_queries.append(result)
            active_count = len(self._active)

        if timer is None:
            logger.warning(f'Timer not found for operation: {operation_id}', operation_id=operation_id)
            return None

        slow = result.duration_ms > threshold
        self._log_performance(result, threshold, slow)

        if self.metrics is not None:
            self.metrics.record_operation(result.type, success, result.duration_ms, slow)
            self.metrics.set_active_operations(active_count)

        if not self.closed:
            self.events.publish(result)

        return result

    def _log_performance(self, result: CompletedOperation, threshold: int, slow: bool) -> None:
        if slow:
            logger.warning(
                f"[PERF SLOW] {result.type} operation '{result.id}' took {result.duration_ms:.0f}ms",
                operation_id=result.id,
                operation_type=result.type,
                duration_ms=result.duration_ms,
                threshold_ms=threshold,
                success=result.success,
                metadata=result.metadata,
            )
        elif self.verbose:
            logger.debug(
                f"[PERF] {result.type} operation '{result.id}' completed in {result.duration_ms:.0f}ms",
                operation_id=result.id,
                operation_type=result.type,
                duration_ms=result.duration_ms,
            )

    def get_elapsed_ms(self, operation_id: str) -> Optional[float]:
        """Elapsed time of a running operation, or None when it is not running."""
        with self._lock:
            timer = self._active.get(operation_id)
            if timer is None:
                return None
            return max(0.0, (self._clock() - timer.started_at) * 1000)

    def get_stats(self) -> StatsSnapshot:
        """Aggregate statistics since start or the last reset."""
        with self._lock:
            uptime_ms = (self._clock() - self._started_at) * 1000
            counts = dict(self._operation_counts)
            slow_queries = list(self._slow_queries)
            active_count = len(self._active)

        operation_stats: Dict[str, OperationTypeStats] = {}
        for operation_type, _ in counts:
            if operation_type in operation_stats:
                continue
            success_count = counts.get((operation_type, 'success'), 0)
            error_count = counts.get((operation_type, 'error'), 0)
            total = success_count + error_count
            operation_stats[operation_type] = OperationTypeStats(
                total=total,
                success=success_count,
                errors=error_count,
                success_rate=round(success_count / total, 4) if total else 0.0,
            )

        totals: Dict[str, List[float]] = {}
        for query in slow_queries:
            totals.setdefault(query.type, []).append(query.duration_ms)
        slow_query_stats = {
            operation_type: SlowQueryStats(
                count=len(durations),
                avg_duration_ms=sum(durations) / len(durations),
                max_duration_ms=max(durations),
            )
            for operation_type, durations in totals.items()
        }

        return StatsSnapshot(
            uptime_ms=uptime_ms,
            total_operations=sum(counts.values()),
            operation_stats=operation_stats,
            slow_query_stats=slow_query_stats,
            current_active_operations=active_count,
            recent_slow_queries=slow_queries[-RECENT_SLOW_QUERY_COUNT:],
        )

    def get_active_operations(self) -> List[ActiveOperation]:
        """Running operations, longest-running first."""
        with self._lock:
            now = self._clock()
            active = [
                ActiveOperation(
                    id=timer.id,
                    type=timer.type,
                    start_time=timer.start_time,
                    duration_ms=max(0.0, (now - timer.started_at) * 1000),
                    metadata=timer.metadata,
                )
                for timer in self._active.values()
            ]
        return sorted(active, key=lambda operation: operation.duration_ms, reverse=True)

    def get_slow_queries(self) -> List[CompletedOperation]:
        """Every slow operation still held in history, oldest first."""
        with self._lock:
            return list(self._slow_queries)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def reset(self) -> None:
        """Clear running timers, counters and slow history; restart uptime."""
        with self._lock:
            self._active.clear()
            self._operation_counts.clear()
            self._slow_queries.clear()
            self._started_at = self._clock()

        if self.metrics is not None:
            self.metrics.set_active_operations(0)
        logger.info('Performance monitor reset')

    def shutdown(self) -> None:
        """Close the event bus. Timers can still be ended afterwards."""
        if self.closed:
            return
        self.closed = True
        abandoned = self.active_count
        self.events.close()
        if abandoned:
            logger.warning(f'Shutting down with {abandoned} operations still running')

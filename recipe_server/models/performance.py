"""Performance Monitoring Models

Snapshots produced by the performance monitor and the health summary.
All of them are JSON-serializable and safe to return from API endpoints.
"""

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class CompletedOperation(BaseModel):
    """A timed operation after its timer was ended.

    Attributes:
        id: Caller-chosen operation identifier
        type: Operation category (e.g. "dynamodb_query", "api_request")
        start_time: Start timestamp in milliseconds since epoch
        end_time: End timestamp in milliseconds since epoch
        duration_ms: end_time - start_time
        success: Outcome reported by the caller
        error_details: Failure description, only set when success is False
        metadata: Caller-supplied context, carried through unchanged
    """

    id: str
    type: str
    start_time: float
    end_time: float
    duration_ms: float = Field(..., ge=0)
    success: bool
    error_details: str | None = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ActiveOperation(BaseModel):
    """An operation whose timer is still running."""

    id: str
    type: str
    start_time: float
    duration_ms: float = Field(..., ge=0, description='Elapsed time so far')
    metadata: Dict[str, Any] = Field(default_factory=dict)


class OperationTypeStats(BaseModel):
    """Outcome counters for one operation type."""

    total: int
    success: int
    errors: int
    success_rate: float = Field(..., ge=0, le=1, description='success / total')


class SlowQueryStats(BaseModel):
    """Aggregate over the slow operations of one type still held in history."""

    count: int
    avg_duration_ms: float
    max_duration_ms: float


class StatsSnapshot(BaseModel):
    """Point-in-time view of the monitor's aggregate statistics."""

    uptime_ms: float
    total_operations: int
    operation_stats: Dict[str, OperationTypeStats]
    slow_query_stats: Dict[str, SlowQueryStats]
    current_active_operations: int
    recent_slow_queries: List[CompletedOperation]


class HealthPerformance(BaseModel):
    total_operations: int
    active_operations: int
    operation_stats: Dict[str, OperationTypeStats]
    slow_queries: int = Field(..., description='Number of operation types with slow queries')


class HealthReport(BaseModel):
    """Health document served by the readiness endpoint."""

    status: Literal['healthy', 'warning', 'unhealthy']
    timestamp: str
    uptime_ms: float
    performance: HealthPerformance
    warnings: List[str] = Field(default_factory=list)
    version: str

    model_config = {
        'json_schema_extra': {
            'example': {
                'status': 'warning',
                'timestamp': '2025-10-05T12:00:00.000000Z',
                'uptime_ms': 86400000,
                'performance': {
                    'total_operations': 1520,
                    'active_operations': 2,
                    'operation_stats': {
                        'dynamodb_query': {
                            'total': 1200,
                            'success': 1198,
                            'errors': 2,
                            'success_rate': 0.9983,
                        }
                    },
                    'slow_queries': 1,
                },
                'warnings': ['Slow queries detected'],
                'version': '1.0.0',
            }
        }
    }

"""Performance statistics endpoints (admin only)."""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from recipe_server.lib.dependencies import get_monitor, require_admin
from recipe_server.lib.performance_monitor import (
  DEFAULT_SLOW_THRESHOLD_MS,
  SLOW_THRESHOLDS_MS,
  PerformanceMonitor,
)
from recipe_server.lib.structured_logger import StructuredLogger
from recipe_server.models.performance import ActiveOperation, CompletedOperation, StatsSnapshot

logger = StructuredLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


class ThresholdsResponse(BaseModel):
  """Slow thresholds per operation type."""

  thresholds_ms: dict = Field(..., description='Operation type -> threshold in milliseconds')
  default_ms: int = Field(..., description='Threshold for unlisted operation types')


class ResetResponse(BaseModel):
  message: str
  status: str


@router.get('', response_model=StatsSnapshot)
async def get_performance_stats(monitor: PerformanceMonitor = Depends(get_monitor)):
  """Aggregate operation statistics since startup or the last reset."""
  return monitor.get_stats()


@router.get('/active', response_model=List[ActiveOperation])
async def get_active_operations(monitor: PerformanceMonitor = Depends(get_monitor)):
  """Running operations, longest-running first."""
  return monitor.get_active_operations()


@router.get('/slow', response_model=List[CompletedOperation])
async def get_slow_operations(monitor: PerformanceMonitor = Depends(get_monitor)):
  """Every slow operation still held in history, oldest first."""
  return monitor.get_slow_queries()


@router.get('/thresholds', response_model=ThresholdsResponse)
async def get_thresholds():
  return ThresholdsResponse(thresholds_ms=dict(SLOW_THRESHOLDS_MS), default_ms=DEFAULT_SLOW_THRESHOLD_MS)


@router.post('/reset', response_model=ResetResponse)
async def reset_performance_stats(monitor: PerformanceMonitor = Depends(get_monitor)):
  """Clear counters, running timers and slow history."""
  monitor.reset()
  logger.info('Performance statistics reset via admin endpoint')
  return ResetResponse(message='Performance statistics reset', status='ok')

"""Integration tests for the performance monitor under concurrent use.

Timers are started and ended from many threads at once; counters, active set
and event delivery must stay consistent.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from recipe_server.lib.events import OperationEventBus
from recipe_server.lib.timing import run_timed

pytestmark = pytest.mark.integration

OPERATIONS = 1000


def _run_pairs(monitor, start_index, count):
  for i in range(start_index, start_index + count):
    operation_type = 'dynamodb_query' if i % 2 else 'cache_operation'
    monitor.start_timer(f'op-{i}', operation_type, {'index': i})
    monitor.end_timer(f'op-{i}', success=i % 10 != 0, error_details='boom')


def test_concurrent_start_end_pairs(large_bus_monitor, worker_count):
  per_worker = OPERATIONS // worker_count
  with ThreadPoolExecutor(max_workers=worker_count) as pool:
    futures = [
      pool.submit(_run_pairs, large_bus_monitor, w * per_worker, per_worker)
      for w in range(worker_count)
    ]
    for future in futures:
      future.result()

  stats = large_bus_monitor.get_stats()
  assert large_bus_monitor.active_count == 0
  assert stats.total_operations == OPERATIONS
  assert sum(s.total for s in stats.operation_stats.values()) == OPERATIONS
  assert sum(s.errors for s in stats.operation_stats.values()) == OPERATIONS // 10


def test_every_completion_delivered_once(large_bus_monitor, worker_count):
  subscription = large_bus_monitor.events.subscribe()
  per_worker = OPERATIONS // worker_count

  threads = [
    threading.Thread(target=_run_pairs, args=(large_bus_monitor, w * per_worker, per_worker))
    for w in range(worker_count)
  ]
  for thread in threads:
    thread.start()
  for thread in threads:
    thread.join()

  events = subscription.drain()
  assert subscription.dropped == 0
  assert len(events) == OPERATIONS
  assert len({event.id for event in events}) == OPERATIONS


def test_small_subscriber_drops_without_blocking(large_bus_monitor):
  slow_subscriber = large_bus_monitor.events.subscribe(maxsize=10)
  fast_subscriber = large_bus_monitor.events.subscribe()

  _run_pairs(large_bus_monitor, 0, 100)

  assert slow_subscriber.pending() == 10
  assert slow_subscriber.dropped == 90
  assert fast_subscriber.pending() == 100


def test_run_timed_from_threads(large_bus_monitor, worker_count):
  def work(n):
    return run_timed(large_bus_monitor, 'recipe_scaling', lambda: n * 2)

  with ThreadPoolExecutor(max_workers=worker_count) as pool:
    results = list(pool.map(work, range(200)))

  assert results == [n * 2 for n in range(200)]
  assert large_bus_monitor.get_stats().operation_stats['recipe_scaling'].success == 200


def test_reset_during_concurrent_use_leaves_consistent_state(large_bus_monitor, worker_count):
  stop = threading.Event()

  def churn(worker):
    i = 0
    while not stop.is_set():
      operation_id = f'w{worker}-{i}'
      large_bus_monitor.start_timer(operation_id, 'api_request')
      large_bus_monitor.end_timer(operation_id)
      i += 1

  threads = [threading.Thread(target=churn, args=(w,)) for w in range(worker_count)]
  for thread in threads:
    thread.start()
  for _ in range(20):
    large_bus_monitor.reset()
  stop.set()
  for thread in threads:
    thread.join()

  stats = large_bus_monitor.get_stats()
  api_stats = stats.operation_stats.get('api_request')
  if api_stats is not None:
    assert api_stats.total == api_stats.success + api_stats.errors
  assert large_bus_monitor.active_count == 0


def test_drop_count_exact_under_concurrent_publish(worker_count):
  bus = OperationEventBus()
  subscription = bus.subscribe(maxsize=1)
  bus.publish('fills-the-queue')
  per_worker = 2000

  def flood():
    for i in range(per_worker):
      bus.publish(i)

  threads = [threading.Thread(target=flood) for _ in range(worker_count)]
  for thread in threads:
    thread.start()
  for thread in threads:
    thread.join()

  assert subscription.pending() == 1
  assert subscription.dropped == worker_count * per_worker

"""Unit tests for the operation event bus."""

import queue

import pytest

from recipe_server.lib.events import OperationEventBus


class TestOperationEventBus:
  def test_every_subscriber_receives_event_once(self):
    bus = OperationEventBus()
    first = bus.subscribe()
    second = bus.subscribe()

    delivered = bus.publish('completed')

    assert delivered == 2
    assert first.drain() == ['completed']
    assert second.drain() == ['completed']
    assert first.drain() == []

  def test_full_subscriber_drops_without_blocking(self):
    bus = OperationEventBus()
    slow = bus.subscribe(maxsize=2)
    fast = bus.subscribe(maxsize=10)

    for index in range(5):
      bus.publish(index)

    assert slow.drain() == [0, 1]
    assert slow.dropped == 3
    assert fast.drain() == [0, 1, 2, 3, 4]
    assert fast.dropped == 0

  def test_unsubscribed_receives_nothing(self):
    bus = OperationEventBus()
    subscription = bus.subscribe()
    subscription.close()

    assert bus.publish('event') == 0
    assert subscription.closed is True
    assert bus.subscriber_count == 0

  def test_context_manager_unsubscribes(self):
    bus = OperationEventBus()
    with bus.subscribe() as subscription:
      bus.publish('inside')
    bus.publish('outside')

    assert subscription.drain() == ['inside']

  def test_get_times_out_when_empty(self):
    subscription = OperationEventBus().subscribe()

    with pytest.raises(queue.Empty):
      subscription.get(timeout=0.01)

  def test_close_closes_all_subscriptions(self):
    bus = OperationEventBus()
    subscriptions = [bus.subscribe() for _ in range(3)]

    bus.close()

    assert all(subscription.closed for subscription in subscriptions)
    assert bus.publish('late') == 0

  def test_default_queue_size_applies(self):
    bus = OperationEventBus(default_queue_size=1)
    subscription = bus.subscribe()

    bus.publish('a')
    bus.publish('b')

    assert subscription.pending() == 1
    assert subscription.dropped == 1

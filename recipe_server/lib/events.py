"""Publish/subscribe channel for "operation completed" events.

Each subscriber owns a bounded queue. Publishing never blocks: when a
subscriber's queue is full the event is dropped for that subscriber only and
counted in ``Subscription.dropped``. Every completed operation is delivered
at most once to each subscriber that is subscribed when it is published.
"""

import queue
import threading
from typing import Generic, List, Optional, TypeVar

from recipe_server.lib.structured_logger import StructuredLogger

logger = StructuredLogger(__name__)

T = TypeVar('T')

DEFAULT_QUEUE_SIZE = 1000


class Subscription(Generic[T]):
    """A subscriber's view of the event stream."""

    def __init__(self, bus: 'OperationEventBus[T]', maxsize: int):
        self._bus = bus
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._dropped_lock = threading.Lock()
        self.dropped = 0
        self.closed = False

    def offer(self, event: T) -> bool:
        """Enqueue without blocking. Returns False when the event was dropped."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._dropped_lock:
                self.dropped += 1
            return False
        return True

    def get(self, timeout: Optional[float] = None) -> T:
        """Wait for the next event.

        Raises:
            queue.Empty: No event arrived within ``timeout`` seconds
        """
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> T:
        return self._queue.get_nowait()

    def drain(self) -> List[T]:
        """Return every buffered event without waiting."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Stop receiving events. Already buffered events stay readable."""
        self._bus.unsubscribe(self)

    def __enter__(self) -> 'Subscription[T]':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class OperationEventBus(Generic[T]):
    """Fan-out of completed operations to any number of subscribers."""

    def __init__(self, default_queue_size: int = DEFAULT_QUEUE_SIZE):
        self.default_queue_size = default_queue_size
        self._subscribers: List[Subscription[T]] = []
        self._lock = threading.Lock()

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription[T]:
        """Register a subscriber with its own bounded buffer."""
        subscription = Subscription(self, maxsize or self.default_queue_size)
        with self._lock:
            self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription[T]) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)
        subscription.closed = True

    def publish(self, event: T) -> int:
        """Offer ``event`` to every subscriber.

        Returns:
            Number of subscribers that accepted the event
        """
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for subscription in subscribers:
            if subscription.offer(event):
                delivered += 1
            elif subscription.dropped == 1 or subscription.dropped % 100 == 0:
                logger.warning('Event subscriber is full, dropping events', dropped=subscription.dropped)
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def close(self) -> None:
        """Close every subscription."""
        with self._lock:
            subscribers = list(self._subscribers)
            self._subscribers.clear()
        for subscription in subscribers:
            subscription.closed = True

"""
Event Bus Service - Thread-safe operation notifications

Key behaviors:
- Weak references by default so subscribers are dropped when collected
- No lock held while callbacks run
- Published events are queued and dispatched on a background thread
- A failing callback is logged and never reaches the publisher
"""

import logging
import queue
import threading
import weakref
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Events(Enum):
    """Operation outcomes published by the instruction processor"""

    ROOM_INITIALIZED = "room.initialized"
    PREDICTION_COMMITTED = "prediction.committed"
    PREDICTION_SETTLED = "prediction.settled"
    OPERATION_FAILED = "operation.failed"


class EventBus:
    """
    Queue-backed publish/subscribe hub.

    Usage:
        bus = EventBus()
        bus.start()
        bus.subscribe(Events.PREDICTION_SETTLED, handler)
        bus.publish(Events.PREDICTION_SETTLED, {"won": True})
        bus.wait_until_idle()
    """

    def __init__(self, max_queue_size: int = 5000):
        self._subscribers: dict[Events, dict[int, Any]] = {}
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._processing = False
        self._thread: threading.Thread | None = None
        self._sub_lock = threading.RLock()
        self._stats = {
            "events_published": 0,
            "events_processed": 0,
            "events_dropped": 0,
            "errors": 0,
        }
        logger.debug(f"EventBus initialized with queue size {max_queue_size}")

    @property
    def is_processing(self) -> bool:
        return self._processing

    def start(self):
        """Start the dispatch thread"""
        if self._processing:
            return
        self._processing = True
        self._thread = threading.Thread(target=self._process_events, daemon=True)
        self._thread.start()
        logger.debug("EventBus started")

    def stop(self, timeout: float = 3.0):
        """Stop dispatching after queued events are drained"""
        if not self._processing:
            return
        self._processing = False
        self._queue.put(None)
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.error("EventBus thread did not stop cleanly within timeout")
        self._thread = None
        logger.debug("EventBus stopped")

    def subscribe(self, event: Events, callback: Callable, weak: bool = True):
        """
        Subscribe to an event.

        Args:
            event: Event to subscribe to
            callback: Called with {"name": event.value, "data": payload}
            weak: Hold a weak reference (lambdas and builtins fall back to strong)
        """
        ref: Any = callback
        if weak:
            try:
                if hasattr(callback, "__self__"):
                    ref = weakref.WeakMethod(callback)
                else:
                    ref = weakref.ref(callback)
            except TypeError:
                ref = callback
        with self._sub_lock:
            self._subscribers.setdefault(event, {})[id(callback)] = ref
        logger.debug(f"Subscribed to {event.value}")

    def unsubscribe(self, event: Events, callback: Callable):
        with self._sub_lock:
            entries = self._subscribers.get(event)
            if not entries:
                return
            entries.pop(id(callback), None)
            if not entries:
                self._subscribers.pop(event, None)

    def publish(self, event: Events, data: Any = None):
        """Queue an event; drops (and counts) it if the queue is full"""
        try:
            self._queue.put_nowait((event, data))
            self._stats["events_published"] += 1
        except queue.Full:
            self._stats["events_dropped"] += 1
            logger.warning(f"Event queue full, dropping event: {event.value}")

    def wait_until_idle(self):
        """Block until every queued event has been dispatched"""
        if self._processing:
            self._queue.join()

    def _process_events(self):
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    break
                event, data = item
                self._dispatch(event, data)
            finally:
                self._queue.task_done()

    def _dispatch(self, event: Events, data: Any):
        callbacks = []
        with self._sub_lock:
            entries = self._subscribers.get(event, {})
            for cb_id, ref in list(entries.items()):
                callback = self._resolve(ref)
                if callback is None:
                    entries.pop(cb_id, None)
                else:
                    callbacks.append(callback)

        for callback in callbacks:
            try:
                callback({"name": event.value, "data": data})
                self._stats["events_processed"] += 1
            except Exception as e:
                self._stats["errors"] += 1
                logger.error(f"Error in callback for {event.value}: {e}", exc_info=True)

    @staticmethod
    def _resolve(ref):
        if isinstance(ref, weakref.ReferenceType):
            return ref()
        return ref

    def has_subscribers(self, event: Events) -> bool:
        with self._sub_lock:
            return any(self._resolve(ref) is not None for ref in self._subscribers.get(event, {}).values())

    def get_stats(self) -> dict[str, Any]:
        with self._sub_lock:
            stats = {
                "subscriber_count": sum(len(e) for e in self._subscribers.values()),
                "queue_size": self._queue.qsize(),
                "processing": self._processing,
            }
        stats.update(self._stats)
        return stats

    def clear_all(self):
        """Clear all subscribers (for testing/cleanup)"""
        with self._sub_lock:
            self._subscribers.clear()


# Global instance
event_bus = EventBus()

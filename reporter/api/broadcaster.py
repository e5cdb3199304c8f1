"""Fan-out of detection events to live subscribers.

Each subscriber owns a bounded queue. `publish()` first hands the event to
every subscriber with room, then waits for the remaining ones against a single
shared deadline, so one publish never blocks longer than `delivery_timeout`
no matter how many subscribers are stuck. A subscriber still full at the
deadline is closed and dropped from the registry.

The registry lock only guards the dict; queue I/O happens outside it.
"""
from __future__ import annotations

import itertools
import json
import logging
import queue
import threading
import time
from typing import Any, Dict, List, Optional, Union

from reporter.errors import SubscriptionClosed
from reporter.models import DetectionEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """Handle returned by `EventBroadcaster.subscribe()`."""

    def __init__(self, sid: int, queue_size: int):
        self.id = sid
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max(1, queue_size))
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, payload: str, timeout: Optional[float] = None) -> bool:
        if self.closed:
            return False
        try:
            if timeout is None:
                self._queue.put_nowait(payload)
            else:
                self._queue.put(payload, timeout=max(0.0, timeout))
        except queue.Full:
            return False
        return True

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """Return the next payload, or None if `timeout` elapses first.

        Raises `SubscriptionClosed` once the subscription has been closed.
        """
        if self.closed:
            raise SubscriptionClosed(f'subscription {self.id} closed')
        try:
            payload = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if payload is _CLOSED or self.closed:
            raise SubscriptionClosed(f'subscription {self.id} closed')
        return payload

    def close(self) -> None:
        self._closed.set()
        # wakes a consumer blocked in get(); a full queue means nobody is blocked
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            pass

    def __repr__(self):
        return f"<Subscription id={self.id} closed={self.closed}>"


class EventBroadcaster:
    def __init__(self, delivery_timeout: float = 1.0, queue_size: int = 64):
        self.delivery_timeout = delivery_timeout
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(self) -> Subscription:
        with self._lock:
            sub = Subscription(next(self._ids), self.queue_size)
            self._subscribers[sub.id] = sub
        logger.info("Subscriber %d registered", sub.id)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
        sub.close()
        if removed is not None:
            logger.info("Subscriber %d unsubscribed", sub.id)

    def subscribers(self) -> List[Subscription]:
        with self._lock:
            return list(self._subscribers.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: Union[DetectionEvent, Dict[str, Any]]) -> int:
        """Deliver `event` to every current subscriber; return how many got it."""
        data = event.to_dict() if isinstance(event, DetectionEvent) else event
        payload = json.dumps(data)

        delivered = 0
        pending = []
        for sub in self.subscribers():
            if sub.offer(payload):
                delivered += 1
            elif not sub.closed:
                pending.append(sub)

        deadline = time.monotonic() + self.delivery_timeout
        for sub in pending:
            if sub.offer(payload, timeout=deadline - time.monotonic()):
                delivered += 1
            elif not sub.closed:
                self._evict(sub)
        return delivered

    def close_all(self) -> None:
        with self._lock:
            subs = list(self._subscribers.values())
            self._subscribers.clear()
        for sub in subs:
            sub.close()

    def _evict(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(sub.id, None)
        sub.close()
        logger.warning("Subscriber %d did not accept an event within %.1fs; dropped",
                       sub.id, self.delivery_timeout)

"""In-process change notifications.

An event only says "table X changed"; subscribers are expected to re-read
the store, never to apply the payload. Slow subscribers lose their oldest
events instead of blocking publishers.
"""
import logging
import queue
import threading
from datetime import datetime

logger = logging.getLogger(__name__)

TABLES = ("reservations", "participants")


class Subscription:
    def __init__(self, tables, maxsize: int = 100):
        self.tables = frozenset(tables)
        self._queue = queue.Queue(maxsize=maxsize)

    def offer(self, event: dict) -> None:
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def get(self, timeout=None):
        """Next event, or None when ``timeout`` passes first."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class ChangeFeed:
    def __init__(self, queue_size: int = 100):
        self._lock = threading.Lock()
        self._subscriptions = []
        self.queue_size = queue_size

    def subscribe(self, tables=TABLES) -> Subscription:
        unknown = set(tables) - set(TABLES)
        if unknown:
            raise ValueError(f"Unknown tables: {sorted(unknown)}")
        sub = Subscription(tables, maxsize=self.queue_size)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, table: str, action: str, record_id=None) -> int:
        event = {
            "table": table,
            "action": action,
            "id": str(record_id) if record_id is not None else None,
            "at": datetime.utcnow().isoformat(),
        }
        with self._lock:
            targets = [s for s in self._subscriptions if table in s.tables]
        for sub in targets:
            sub.offer(event)
        logger.debug("change %s.%s delivered to %d subscriber(s)", table, action, len(targets))
        return len(targets)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)


change_feed = ChangeFeed()

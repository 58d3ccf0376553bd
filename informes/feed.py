# informes/feed.py
"""
In-process change feed. Subscribers receive a fresh Snapshot whenever a
publisher or a report is saved or deleted (see signals.py).

This is an extension point: the request/response screens reload their own
snapshot and do not subscribe. Long-lived consumers (a websocket layer, a
cache warmer) call feed.subscribe() and keep the returned unsubscribe
callable. With no subscribers, signals.py skips building the snapshot.
"""
import logging
import threading
from typing import Callable

from .snapshot import Snapshot

logger = logging.getLogger(__name__)

Subscriber = Callable[[Snapshot], None]


class ChangeFeed:
    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscribers)

    def publish(self, snapshot: Snapshot) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Change feed subscriber %r failed.", callback)


feed = ChangeFeed()

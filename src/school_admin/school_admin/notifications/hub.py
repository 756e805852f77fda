"""In-process change feed for notifications.

Each browser session holds at most one subscription. Events are queued per
subscription and drained by the polling endpoint; logout tears it down.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, Dict, List

from .model import Notification

logger = logging.getLogger(__name__)


class NotificationHub:
    def __init__(self, *, max_queued: int = 100):
        self._lock = threading.Lock()
        self._queues: Dict[str, Deque[Notification]] = {}
        self._max_queued = int(max_queued)

    def subscribe(self, session_key: str) -> None:
        """(Re)subscribe a session; any previous subscription is replaced."""

        with self._lock:
            self._queues[session_key] = deque(maxlen=self._max_queued)
        logger.debug("Notification subscription opened for %s", session_key)

    def unsubscribe(self, session_key: str) -> None:
        with self._lock:
            self._queues.pop(session_key, None)

    def is_subscribed(self, session_key: str) -> bool:
        with self._lock:
            return session_key in self._queues

    def publish(self, notification: Notification) -> None:
        with self._lock:
            for q in self._queues.values():
                q.append(notification)

    def drain(self, session_key: str) -> List[Notification]:
        with self._lock:
            q = self._queues.get(session_key)
            if q is None:
                return []
            items = list(q)
            q.clear()
            return items

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._queues)

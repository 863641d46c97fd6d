"""Bounded FIFO of formatted alert text awaiting display.

The poller pushes, the list-watches command drains. When nobody drains for a
long time the oldest alerts are evicted once ``max_size`` is reached.
"""

from __future__ import annotations

import threading
from collections import deque

import structlog

log = structlog.get_logger()


class AlertQueue:
    def __init__(self, max_size: int = 500) -> None:
        self._queue: deque[str] = deque()
        self._max_size = max_size
        self._lock = threading.Lock()

    def push(self, text: str) -> bool:
        """Queue an alert. Returns False if an identical alert is already pending."""
        with self._lock:
            if text in self._queue:
                log.debug("alert_duplicate_dropped", text=text)
                return False
            if len(self._queue) >= self._max_size:
                evicted = self._queue.popleft()
                log.warning("alert_evicted", text=evicted, max_size=self._max_size)
            self._queue.append(text)
        log.info("alert_queued", text=text)
        return True

    def drain(self, max_count: int) -> list[str]:
        """Remove and return up to ``max_count`` oldest alerts."""
        with self._lock:
            count = min(max(max_count, 0), len(self._queue))
            return [self._queue.popleft() for _ in range(count)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

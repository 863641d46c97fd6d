"""Registry of active watches and last-observed probabilities."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import structlog

log = structlog.get_logger()


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    ANY = "any"


@dataclass(frozen=True)
class WatchedEvent:
    event_key: str
    threshold_pct: float | None = None  # None → detector default
    direction: Direction = Direction.ANY
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ObservedProbability:
    home_win_prob: float
    observed_at: datetime


class WatchRegistry:
    """Holds watches keyed by event key plus a separate baseline side-table.

    All methods take the lock, so the poller and command handlers can share
    one instance; readers always get copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._watches: dict[str, WatchedEvent] = {}
        self._observed: dict[str, ObservedProbability] = {}

    def add_or_replace(
        self,
        event_key: str,
        threshold_pct: float | None = None,
        direction: Direction = Direction.ANY,
    ) -> WatchedEvent:
        watch = WatchedEvent(
            event_key=event_key, threshold_pct=threshold_pct, direction=direction
        )
        with self._lock:
            replaced = event_key in self._watches
            self._watches[event_key] = watch
        log.info(
            "watch_added",
            event_key=event_key,
            threshold_pct=threshold_pct,
            direction=direction.value,
            replaced=replaced,
        )
        return watch

    def remove(self, event_key: str) -> bool:
        """Drop a watch and its baseline. Returns whether the watch existed."""
        with self._lock:
            existed = self._watches.pop(event_key, None) is not None
            self._observed.pop(event_key, None)
        if existed:
            log.info("watch_removed", event_key=event_key)
        return existed

    def list(self) -> list[WatchedEvent]:
        """Current watches in insertion order."""
        with self._lock:
            return list(self._watches.values())

    def get(self, event_key: str) -> WatchedEvent | None:
        with self._lock:
            return self._watches.get(event_key)

    def __contains__(self, event_key: object) -> bool:
        with self._lock:
            return event_key in self._watches

    def __len__(self) -> int:
        with self._lock:
            return len(self._watches)

    # ── Observations ────────────────────────────────────────────────

    def get_observation(self, event_key: str) -> ObservedProbability | None:
        with self._lock:
            return self._observed.get(event_key)

    def record_observation(
        self,
        event_key: str,
        home_win_prob: float,
        observed_at: datetime | None = None,
    ) -> bool:
        """Store the latest home-win probability for a watched key.

        Ignored (returns False) when the key is no longer watched, so a fetch
        that finishes after ``remove`` cannot leave a stale baseline behind.
        """
        obs = ObservedProbability(
            home_win_prob=home_win_prob,
            observed_at=observed_at or datetime.now(timezone.utc),
        )
        with self._lock:
            if event_key not in self._watches:
                return False
            self._observed[event_key] = obs
        return True

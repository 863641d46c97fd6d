"""Shared test fixtures."""

from __future__ import annotations

import pytest

from footy_watch.alerts.queue import AlertQueue
from footy_watch.api.base import SnapshotSource
from footy_watch.api.errors import NoDataError
from footy_watch.api.schemas import Candidate, ProbabilitySnapshot
from footy_watch.config import Settings
from footy_watch.engine.registry import WatchRegistry


class FakeSource(SnapshotSource):
    """In-memory snapshot source; tests set ``probs`` / ``errors`` per key."""

    def __init__(self, candidates: list[Candidate] | None = None) -> None:
        self.candidates = candidates or []
        self.probs: dict[str, float] = {}
        self.errors: dict[str, Exception] = {}
        self.list_error: Exception | None = None
        self.calls: list[str] = []

    async def list_candidates(self) -> list[Candidate]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.candidates)

    async def get_snapshot(self, key: str) -> ProbabilitySnapshot:
        self.calls.append(key)
        if key in self.errors:
            raise self.errors[key]
        if key not in self.probs:
            raise NoDataError(f"No probability data for {key}")
        home, away = "Home FC", "Away FC"
        for c in self.candidates:
            if c.key == key:
                home, away = c.home_team, c.away_team
        prob = self.probs[key]
        return ProbabilitySnapshot(
            event_key=key,
            home_team=home,
            away_team=away,
            home_win_prob=prob,
            draw_prob=0.25,
            away_win_prob=max(0.0, 1.0 - prob - 0.25),
            liquidity=12000.0,
            volume=54000.0,
            source_count=2,
            as_of="2025-12-06T12:00:00Z",
        )


def candidate(key: str, home: str, away: str, lease_id: str | None = None) -> Candidate:
    return Candidate(
        lease_id=lease_id or key,
        event_key=key,
        home_team=home,
        away_team=away,
        start_time="2025-12-06T12:30:00Z",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        bwaps_base_url="https://bwaps.test/api",
        bwaps_api_key="test_key",
    )


@pytest.fixture
def candidates() -> list[Candidate]:
    return [
        candidate("ev_1", "Arsenal", "Tottenham"),
        candidate("ev_2", "Liverpool", "Man City"),
        candidate("ev_3", "Real Madrid", "Barcelona"),
    ]


@pytest.fixture
def source(candidates) -> FakeSource:
    return FakeSource(candidates)


@pytest.fixture
def registry() -> WatchRegistry:
    return WatchRegistry()


@pytest.fixture
def queue() -> AlertQueue:
    return AlertQueue(max_size=50)

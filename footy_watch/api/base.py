"""Collaborator contract the watch engine polls against."""

from __future__ import annotations

import abc

from footy_watch.api.schemas import Candidate, ProbabilitySnapshot


class SnapshotSource(abc.ABC):
    """Anything that can list trackable events and fetch a snapshot by key."""

    @abc.abstractmethod
    async def list_candidates(self) -> list[Candidate]:
        """Return all currently trackable events in a stable order."""
        ...

    @abc.abstractmethod
    async def get_snapshot(self, key: str) -> ProbabilitySnapshot:
        """Fetch a fresh snapshot. Raises NoDataError / BwapsError."""
        ...

"""Pydantic models for BWAPs API responses and engine-facing snapshot types."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    # Upstream payloads are camelCase; fields are declared with aliases.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class HealthResponse(_ApiModel):
    ok: bool
    name: str = ""
    ts: str = ""


class Lease(_ApiModel):
    lease_id: str = Field(alias="leaseId")
    event_key: str | None = Field(default=None, alias="eventKey")
    created_at: str = Field(default="", alias="createdAt")
    home_team: str = Field(alias="homeTeam")
    away_team: str = Field(alias="awayTeam")
    start_time: str = Field(default="", alias="startTime")
    is_past: bool = Field(default=False, alias="isPast")
    source_urls: list[str] = Field(default_factory=list, alias="sourceUrls")


class LeasesResponse(_ApiModel):
    count: int = 0
    leases: list[Lease] = Field(default_factory=list)


class PmfSchema(_ApiModel):
    outcomes: list[str]
    probs: list[float]
    sum_raw: float | None = Field(default=None, alias="sumRaw")
    overround_raw: float | None = Field(default=None, alias="overroundRaw")


class QualitySignalsSchema(_ApiModel):
    liquidity: float = 0.0
    volume: float = 0.0
    overround: float = 0.0
    source_count: int = Field(default=0, alias="sourceCount")


class SnapshotSchema(_ApiModel):
    pmf: PmfSchema
    as_of: str = Field(alias="asOf")
    quality_signals: QualitySignalsSchema = Field(
        default_factory=QualitySignalsSchema, alias="qualitySignals"
    )


class TeamSchema(_ApiModel):
    name: str


class CanonicalEventSchema(_ApiModel):
    sport: str = ""
    market_type: str = Field(default="", alias="marketType")
    home_team: TeamSchema = Field(alias="homeTeam")
    away_team: TeamSchema = Field(alias="awayTeam")
    start_time: str = Field(default="", alias="startTime")


class IngestResponse(_ApiModel):
    event_key: str = Field(alias="eventKey")
    snapshot_id: str = Field(default="", alias="snapshotId")
    canonical_event: CanonicalEventSchema = Field(alias="canonicalEvent")
    snapshot: SnapshotSchema


class ReadyToIngestSchema(_ApiModel):
    lease_id: str = Field(alias="leaseId")
    canonical_event: dict[str, Any] | None = Field(default=None, alias="canonicalEvent")
    source_refs: list[Any] | None = Field(default=None, alias="sourceRefs")


class NextStepSchema(_ApiModel):
    method: str
    path: str
    preferred: str = ""
    body: Any = None


class DiscoverResponse(_ApiModel):
    ready_to_ingest: ReadyToIngestSchema = Field(alias="readyToIngest")
    next: NextStepSchema | None = None
    assumptions: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class Candidate(BaseModel):
    """A trackable event as listed upstream, used for key resolution."""

    lease_id: str
    event_key: str | None = None
    home_team: str
    away_team: str
    start_time: str = ""
    is_past: bool = False

    @property
    def key(self) -> str:
        return self.event_key or self.lease_id

    @classmethod
    def from_lease(cls, lease: Lease) -> Candidate:
        return cls(
            lease_id=lease.lease_id,
            event_key=lease.event_key,
            home_team=lease.home_team,
            away_team=lease.away_team,
            start_time=lease.start_time,
            is_past=lease.is_past,
        )


class ProbabilitySnapshot(BaseModel):
    """One point-in-time probability reading for an event.

    The three probabilities need not sum to 1 (markets carry overround).
    """

    event_key: str
    home_team: str
    away_team: str
    home_win_prob: float = Field(ge=0.0, le=1.0)
    draw_prob: float = Field(ge=0.0, le=1.0)
    away_win_prob: float = Field(ge=0.0, le=1.0)
    liquidity: float = 0.0
    volume: float = 0.0
    source_count: int = 0
    as_of: str = ""

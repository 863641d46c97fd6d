"""Async client for the BWAPs probability aggregator."""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from footy_watch.api.base import SnapshotSource
from footy_watch.api.errors import BwapsError, NoDataError, PaymentRequiredError
from footy_watch.api.schemas import (
    Candidate,
    DiscoverResponse,
    HealthResponse,
    IngestResponse,
    Lease,
    LeasesResponse,
    ProbabilitySnapshot,
)
from footy_watch.config import Settings

log = structlog.get_logger()

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _clamp_prob(value: float) -> float:
    return min(1.0, max(0.0, value))


def _normalize_team(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


class BwapsClient(SnapshotSource):
    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        headers = {"Content-Type": "application/json"}
        if settings.bwaps_api_key:
            headers["Authorization"] = f"Bearer {settings.bwaps_api_key}"
        self._client = httpx.AsyncClient(
            base_url=settings.bwaps_base_url,
            headers=headers,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── Public methods ──────────────────────────────────────────────

    async def check_health(self) -> HealthResponse:
        """Health check (free endpoint)."""
        data = await self._request("GET", "/health")
        try:
            return HealthResponse.model_validate(data)
        except ValidationError as exc:
            raise BwapsError(f"Malformed health response: {exc}") from exc

    async def get_active_leases(self) -> LeasesResponse:
        """All active market leases (free endpoint)."""
        data = await self._request("GET", "/bwaps/leases")
        try:
            return LeasesResponse.model_validate(data)
        except ValidationError as exc:
            raise BwapsError(f"Malformed leases response: {exc}") from exc

    async def list_candidates(self) -> list[Candidate]:
        """Leases as resolution candidates, in upstream order."""
        leases = await self.get_active_leases()
        return [Candidate.from_lease(lease) for lease in leases.leases]

    async def discover_event(self, polymarket_url: str, kalshi_url: str) -> DiscoverResponse:
        """Discover an event from source market URLs and obtain a lease id.

        Requires a bearer token or an x402 payment.
        """
        body = {
            "sources": {
                "polymarket": {"url": polymarket_url},
                "kalshi": {"url": kalshi_url},
            },
            "options": {"includeLease": True},
        }
        data = await self._request("POST", "/sources/discover", json=body)
        try:
            return DiscoverResponse.model_validate(data)
        except ValidationError as exc:
            raise BwapsError(f"Malformed discover response: {exc}") from exc

    async def ingest_prediction(self, key: str) -> IngestResponse:
        """Aggregated probabilities for one lease. Requires auth or x402."""
        body = {
            "leaseId": key,
            "options": {
                "include": {"signals": True, "quotes": True, "checks": True},
            },
        }
        try:
            data = await self._request("POST", "/bwaps/ingest", json=body)
        except BwapsError as exc:
            if exc.status_code == 404:
                raise NoDataError(f"No probability data for {key}", 404) from exc
            raise
        try:
            return IngestResponse.model_validate(data)
        except ValidationError as exc:
            raise NoDataError(f"Malformed snapshot for {key}") from exc

    async def get_snapshot(self, key: str) -> ProbabilitySnapshot:
        """Fetch and flatten the home/draw/away probabilities for a key."""
        data = await self.ingest_prediction(key)
        pmf = data.snapshot.pmf
        if not pmf.outcomes or not pmf.probs:
            raise NoDataError(f"No probability data for {key}")

        probs = {
            outcome.upper(): prob for outcome, prob in zip(pmf.outcomes, pmf.probs)
        }
        signals = data.snapshot.quality_signals
        snapshot = ProbabilitySnapshot(
            event_key=key,
            home_team=data.canonical_event.home_team.name,
            away_team=data.canonical_event.away_team.name,
            home_win_prob=_clamp_prob(probs.get("HOME", 0.0)),
            draw_prob=_clamp_prob(probs.get("DRAW", 0.0)),
            away_win_prob=_clamp_prob(probs.get("AWAY", 0.0)),
            liquidity=signals.liquidity,
            volume=signals.volume,
            source_count=signals.source_count,
            as_of=data.snapshot.as_of,
        )
        log.debug(
            "snapshot_fetched",
            key=key,
            upstream_event_key=data.event_key,
            home=snapshot.home_win_prob,
            draw=snapshot.draw_prob,
            away=snapshot.away_win_prob,
        )
        return snapshot

    async def find_lease_by_teams(self, home_team: str, away_team: str) -> Lease | None:
        """Find a lease by team names, accepting either home/away order."""
        leases = await self.get_active_leases()
        home_norm = _normalize_team(home_team)
        away_norm = _normalize_team(away_team)
        if not home_norm or not away_norm:
            return None

        def _close(a: str, b: str) -> bool:
            return a in b or b in a

        for lease in leases.leases:
            lease_home = _normalize_team(lease.home_team)
            lease_away = _normalize_team(lease.away_team)
            if _close(lease_home, home_norm) and _close(lease_away, away_norm):
                return lease
            if _close(lease_home, away_norm) and _close(lease_away, home_norm):
                return lease
        return None

    # ── Internal ────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        log.info("bwaps_request", method=method, path=path)
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise BwapsError(f"BWAPs request failed: {exc}") from exc

        if resp.status_code == 402:
            message = self._payment_message(resp)
            log.warning("bwaps_payment_required", path=path, detail=message)
            raise PaymentRequiredError(message, 402)

        if resp.is_error:
            log.error("bwaps_api_error", path=path, status=resp.status_code, body=resp.text)
            raise BwapsError(
                f"BWAPs API error: {resp.reason_phrase} - {resp.text}",
                resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise BwapsError(f"BWAPs returned invalid JSON for {path}") from exc

    @staticmethod
    def _payment_message(resp: httpx.Response) -> str:
        try:
            challenge = resp.json().get("x402") or {}
        except (ValueError, AttributeError):
            challenge = {}
        amount = challenge.get("amount", "?")
        currency = challenge.get("currency", "")
        instructions = challenge.get("instructions", "")
        return f"Payment required: {amount} {currency}. {instructions}".strip()

"""Watch commands served to the chat layer: watch, unwatch, list, odds."""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from footy_watch.alerts.queue import AlertQueue
from footy_watch.api.base import SnapshotSource
from footy_watch.api.errors import BwapsError, NoDataError, PaymentRequiredError
from footy_watch.api.schemas import Candidate, ProbabilitySnapshot
from footy_watch.engine.movement import DEFAULT_THRESHOLD_PCT
from footy_watch.engine.registry import Direction, WatchRegistry
from footy_watch.engine.resolver import parse_direction, parse_threshold, resolve_event_key
from footy_watch.polling.scheduler import WatchPoller

log = structlog.get_logger()

WATCH_USAGE = (
    "I couldn't tell which match you mean. Try `watch eventKey <id> 5% up` "
    "or name both teams, e.g. `watch Arsenal vs Tottenham 4%`."
)
UNWATCH_USAGE = (
    "Which match should I stop watching? Try `unwatch eventKey <id>` "
    "or name both teams."
)
ODDS_USAGE = (
    "I couldn't find that match. Try `odds eventKey <id>` or name both teams, "
    "e.g. `odds Arsenal vs Tottenham`."
)
NO_DATA_TEXT = "No probability data for this event yet."
RETRY_TEXT = "Sorry, I couldn't reach the probability service right now. Please try again in a moment."

DIRECTION_LABELS = {
    Direction.UP: "rises",
    Direction.DOWN: "drops",
    Direction.ANY: "moves",
}


@dataclass(frozen=True)
class CommandResult:
    text: str
    success: bool = True


def _error_text(exc: BwapsError) -> str:
    if isinstance(exc, PaymentRequiredError):
        return str(exc)
    if isinstance(exc, NoDataError):
        return NO_DATA_TEXT
    return RETRY_TEXT


def format_snapshot(snap: ProbabilitySnapshot) -> str:
    lines = [
        f"📊 **{snap.home_team} vs {snap.away_team}** ({snap.event_key})",
        "",
        f"{snap.home_team} win: **{snap.home_win_prob:.1%}**",
        f"Draw: **{snap.draw_prob:.1%}**",
        f"{snap.away_team} win: **{snap.away_win_prob:.1%}**",
        "",
        f"Sources: {snap.source_count} | Liquidity: {snap.liquidity:,.0f} | Volume: {snap.volume:,.0f}",
    ]
    if snap.as_of:
        lines.append(f"As of {snap.as_of}")
    return "\n".join(lines)


class WatchCommands:
    def __init__(
        self,
        source: SnapshotSource,
        registry: WatchRegistry,
        queue: AlertQueue,
        poller: WatchPoller | None = None,
        drain_limit: int = 5,
    ) -> None:
        self._source = source
        self._registry = registry
        self._queue = queue
        self._poller = poller
        self._drain_limit = drain_limit

    async def watch(self, text: str) -> CommandResult:
        candidates = await self._candidates_or_empty()
        key = resolve_event_key(text, candidates)
        if key is None:
            return CommandResult(WATCH_USAGE, success=False)

        threshold = parse_threshold(text)
        direction = parse_direction(text)
        watch = self._registry.add_or_replace(key, threshold, direction)
        effective = threshold if threshold is not None else DEFAULT_THRESHOLD_PCT

        # Best-effort initial baseline; a re-watch keeps the existing one.
        snapshot: ProbabilitySnapshot | None = None
        observed = self._registry.get_observation(key)
        if observed is None:
            try:
                snapshot = await self._source.get_snapshot(key)
                self._registry.record_observation(key, snapshot.home_win_prob)
                observed = self._registry.get_observation(key)
            except Exception:
                log.warning("baseline_fetch_failed", event_key=key, exc_info=True)

        label = self._matchup(key, candidates, snapshot)
        lines = [
            f"👀 Watching {label}",
            f"I'll alert you when the home win probability {DIRECTION_LABELS[watch.direction]} "
            f"by {effective:.1f}pp or more between checks.",
        ]
        if observed is not None:
            lines.append(f"Baseline: {observed.home_win_prob:.1%} home win.")
        return CommandResult("\n".join(lines))

    async def unwatch(self, text: str) -> CommandResult:
        candidates = await self._candidates_or_empty()
        key = resolve_event_key(text, candidates)
        if key is None:
            return CommandResult(UNWATCH_USAGE, success=False)

        if self._registry.remove(key):
            return CommandResult(f"🛑 Stopped watching {key}.")
        return CommandResult(f"I wasn't watching {key}.")

    async def list_watches(self) -> CommandResult:
        watches = self._registry.list()
        alerts = self._queue.drain(self._drain_limit)

        lines: list[str] = []
        if watches:
            lines.append("👀 **Watched events**")
            for w in watches:
                threshold = w.threshold_pct if w.threshold_pct is not None else DEFAULT_THRESHOLD_PCT
                lines.append(f"- {w.event_key}: {w.direction.value}, ≥{threshold:.1f}pp")
        else:
            lines.append("You're not watching any matches.")

        if alerts:
            lines.append("")
            lines.append("🔔 **Recent alerts**")
            lines.extend(f"- {a}" for a in alerts)

        lines.append("")
        if self._poller is not None and self._poller.is_running:
            lines.append(f"Poller: running every {self._poller.interval_ms / 1000:g}s")
        else:
            lines.append("Poller: stopped")
        return CommandResult("\n".join(lines))

    async def odds(self, text: str) -> CommandResult:
        try:
            candidates = await self._source.list_candidates()
        except BwapsError as exc:
            log.error("candidate_listing_failed", error=str(exc))
            return CommandResult(_error_text(exc), success=False)

        key = resolve_event_key(text, candidates)
        if key is None:
            return CommandResult(ODDS_USAGE, success=False)

        try:
            snap = await self._source.get_snapshot(key)
        except BwapsError as exc:
            log.error("odds_lookup_failed", event_key=key, error=str(exc))
            return CommandResult(_error_text(exc), success=False)
        return CommandResult(format_snapshot(snap))

    # ── Internal ────────────────────────────────────────────────────

    async def _candidates_or_empty(self) -> list[Candidate]:
        try:
            return await self._source.list_candidates()
        except BwapsError as exc:
            log.warning("candidate_listing_failed", error=str(exc))
            return []

    @staticmethod
    def _matchup(
        key: str, candidates: list[Candidate], snap: ProbabilitySnapshot | None
    ) -> str:
        if snap is not None:
            return f"{snap.home_team} vs {snap.away_team} ({key})"
        for c in candidates:
            if c.key == key:
                return f"{c.home_team} vs {c.away_team} ({key})"
        return key


_UNWATCH_RE = re.compile(r"\b(?:unwatch|stop watching)\b", re.IGNORECASE)
_LIST_RE = re.compile(
    r"^\s*watches\s*$|\b(?:list watches|list my watches|my watches|show watches|watchlist)\b",
    re.IGNORECASE,
)
_WATCH_RE = re.compile(r"\b(?:watch|track|alert me)\b", re.IGNORECASE)
_ODDS_RE = re.compile(r"\b(?:odds|probabilit(?:y|ies)|chances?|prob)\b", re.IGNORECASE)


async def dispatch(commands: WatchCommands, text: str) -> CommandResult | None:
    """Route a free-text message to a command. Returns None when nothing matches."""
    if _UNWATCH_RE.search(text):
        return await commands.unwatch(text)
    if _LIST_RE.search(text):
        return await commands.list_watches()
    if _WATCH_RE.search(text):
        return await commands.watch(text)
    if _ODDS_RE.search(text):
        return await commands.odds(text)
    return None

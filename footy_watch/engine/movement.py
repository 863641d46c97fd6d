"""Movement detector: home-win probability moves by a threshold between polls."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from footy_watch.api.schemas import ProbabilitySnapshot
from footy_watch.engine.registry import Direction, WatchedEvent

log = structlog.get_logger()

DEFAULT_THRESHOLD_PCT = 3.0


@dataclass(frozen=True)
class MovementAlert:
    event_key: str
    home_team: str
    away_team: str
    previous_prob: float
    current_prob: float
    delta_points: float
    text: str


def effective_threshold(watch: WatchedEvent) -> float:
    if watch.threshold_pct is None:
        return DEFAULT_THRESHOLD_PCT
    return watch.threshold_pct


def direction_passes(direction: Direction, delta_points: float) -> bool:
    if direction == Direction.UP:
        return delta_points > 0
    if direction == Direction.DOWN:
        return delta_points < 0
    return True


def format_alert(
    snapshot: ProbabilitySnapshot, previous: float, current: float, delta_points: float
) -> str:
    arrow = "📈" if delta_points > 0 else "📉"
    return (
        f"{arrow} {snapshot.home_team} vs {snapshot.away_team} ({snapshot.event_key}): "
        f"home win {delta_points:+.2f}pp "
        f"({previous * 100:.1f}% → {current * 100:.1f}%)"
    )


class MovementDetector:
    """Compares each poll only against the immediately preceding observation.

    Sub-threshold drift is not accumulated across ticks: several small moves
    in the same direction never fire even when their sum would.
    """

    def evaluate(
        self,
        watch: WatchedEvent,
        previous: float | None,
        snapshot: ProbabilitySnapshot,
    ) -> MovementAlert | None:
        if previous is None:
            return None

        current = snapshot.home_win_prob
        # Rounded so float noise (0.53 - 0.50) does not sit just under a threshold.
        delta_points = round((current - previous) * 100, 9)
        threshold = effective_threshold(watch)

        if not direction_passes(watch.direction, delta_points):
            return None
        if abs(delta_points) < threshold:
            return None

        log.info(
            "movement_detected",
            event_key=watch.event_key,
            delta_points=round(delta_points, 2),
            threshold=threshold,
            direction=watch.direction.value,
        )
        return MovementAlert(
            event_key=watch.event_key,
            home_team=snapshot.home_team,
            away_team=snapshot.away_team,
            previous_prob=previous,
            current_prob=current,
            delta_points=delta_points,
            text=format_alert(snapshot, previous, current, delta_points),
        )

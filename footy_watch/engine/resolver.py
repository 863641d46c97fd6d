"""Resolve free text to an event key, and parse watch command tokens.

Pure functions; no I/O.
"""

from __future__ import annotations

import re

from footy_watch.api.schemas import Candidate
from footy_watch.engine.registry import Direction

# "eventKey ev_1", "eventKey:ev_1", "eventkey=abc123" or a bare "ev_..." token
_EXPLICIT_KEY = re.compile(r"\beventkey\b\s*[:=]?\s*([a-z0-9][\w\-]*)", re.IGNORECASE)
_BARE_KEY = re.compile(r"\b(ev_[\w\-]+)", re.IGNORECASE)
_THRESHOLD = re.compile(r"(\S+?)\s*%")
_UP_WORDS = re.compile(r"\b(?:up|rises?|above)\b", re.IGNORECASE)
_DOWN_WORDS = re.compile(r"\b(?:down|drops?|below)\b", re.IGNORECASE)
_WORD_SPLIT = re.compile(r"[^\w]+")

MIN_TEAM_WORD_LEN = 4


def extract_explicit_key(text: str) -> str | None:
    """Return an explicitly written identifier, if any."""
    match = _EXPLICIT_KEY.search(text) or _BARE_KEY.search(text)
    return match.group(1) if match else None


def team_words(name: str) -> list[str]:
    """Lower-cased words of a team name long enough to match on."""
    return [w for w in _WORD_SPLIT.split(name.lower()) if len(w) >= MIN_TEAM_WORD_LEN]


def matches_teams(text: str, candidate: Candidate) -> bool:
    """True when a home-team word and an away-team word both appear in text."""
    lowered = text.lower()
    home_hit = any(w in lowered for w in team_words(candidate.home_team))
    away_hit = any(w in lowered for w in team_words(candidate.away_team))
    return home_hit and away_hit


def resolve_event_key(text: str, candidates: list[Candidate]) -> str | None:
    """Resolve free text to an event key.

    An explicit identifier that names a candidate (by event key or lease id)
    wins outright. Otherwise the first candidate whose home and away team
    names both appear in the text is chosen. An explicit identifier that
    names no listed candidate is still returned as-is when no team match
    exists, so keys can be watched before they show up in the listing.
    """
    explicit = extract_explicit_key(text)
    if explicit:
        wanted = explicit.lower()
        for candidate in candidates:
            if wanted in (candidate.key.lower(), candidate.lease_id.lower()):
                return candidate.key

    for candidate in candidates:
        if matches_teams(text, candidate):
            return candidate.key

    return explicit


def parse_threshold(text: str) -> float | None:
    """Parse a "<number>%" token. Malformed or non-positive values give None."""
    match = _THRESHOLD.search(text)
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    if value != value or value <= 0 or value == float("inf"):
        return None
    return value


def parse_direction(text: str) -> Direction:
    if _UP_WORDS.search(text):
        return Direction.UP
    if _DOWN_WORDS.search(text):
        return Direction.DOWN
    return Direction.ANY

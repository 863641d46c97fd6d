"""Tests for the watch/unwatch/list/odds commands and dispatch."""

from __future__ import annotations

import pytest

from footy_watch.api.errors import BwapsError, NoDataError, PaymentRequiredError
from footy_watch.commands import (
    NO_DATA_TEXT,
    ODDS_USAGE,
    RETRY_TEXT,
    UNWATCH_USAGE,
    WATCH_USAGE,
    WatchCommands,
    dispatch,
)
from footy_watch.engine.registry import Direction
from footy_watch.polling.scheduler import WatchPoller


@pytest.fixture
def poller(source, registry, queue) -> WatchPoller:
    return WatchPoller(source, registry, queue)


@pytest.fixture
def commands(source, registry, queue, poller) -> WatchCommands:
    return WatchCommands(source, registry, queue, poller)


# ── watch ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_watch_explicit_key_with_threshold(commands, source, registry):
    source.probs["ev_1"] = 0.5
    result = await commands.watch("watch eventKey ev_1 5%")

    assert result.success
    assert "ev_1" in result.text
    assert "5.0pp" in result.text
    assert "50.0%" in result.text
    watch = registry.get("ev_1")
    assert watch.threshold_pct == 5.0
    assert watch.direction == Direction.ANY
    assert registry.get_observation("ev_1").home_win_prob == 0.5


@pytest.mark.asyncio
async def test_watch_by_teams_with_direction(commands, source, registry):
    source.probs["ev_2"] = 0.4
    result = await commands.watch("watch Liverpool vs Man City down")

    assert result.success
    assert "Liverpool vs Man City (ev_2)" in result.text
    assert "3.0pp" in result.text
    assert registry.get("ev_2").direction == Direction.DOWN
    assert registry.get("ev_2").threshold_pct is None


@pytest.mark.asyncio
async def test_watch_malformed_threshold_falls_back(commands, registry):
    result = await commands.watch("watch ev_1 lots%")
    assert result.success
    assert registry.get("ev_1").threshold_pct is None
    assert "3.0pp" in result.text


@pytest.mark.asyncio
async def test_watch_unresolved_gives_usage(commands, registry):
    result = await commands.watch("watch the big game")
    assert result.success is False
    assert result.text == WATCH_USAGE
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_watch_baseline_failure_is_swallowed(commands, source, registry):
    source.errors["ev_1"] = BwapsError("down", 503)
    result = await commands.watch("watch eventKey ev_1")

    assert result.success
    assert "ev_1" in registry
    assert registry.get_observation("ev_1") is None
    assert "Baseline" not in result.text


@pytest.mark.asyncio
async def test_watch_explicit_key_survives_listing_failure(commands, source, registry):
    source.list_error = BwapsError("leases down", 500)
    result = await commands.watch("watch eventKey ev_77")
    assert result.success
    assert "ev_77" in registry


# ── unwatch ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_unwatch_existing(commands, source, registry):
    source.probs["ev_1"] = 0.5
    await commands.watch("watch Arsenal vs Tottenham")

    result = await commands.unwatch("unwatch arsenal tottenham")
    assert result.success
    assert "Stopped watching ev_1" in result.text
    assert "ev_1" not in registry
    assert registry.get_observation("ev_1") is None


@pytest.mark.asyncio
async def test_unwatch_not_watching(commands):
    result = await commands.unwatch("unwatch eventKey ev_1")
    assert result.success
    assert result.text == "I wasn't watching ev_1."


@pytest.mark.asyncio
async def test_unwatch_unresolved(commands):
    result = await commands.unwatch("unwatch it")
    assert result.success is False
    assert result.text == UNWATCH_USAGE


# ── list watches ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_watches_drains_five_alerts(commands, registry, queue):
    registry.add_or_replace("ev_1", 5.0, Direction.UP)
    registry.add_or_replace("ev_2")
    for i in range(7):
        queue.push(f"alert {i}")

    result = await commands.list_watches()

    assert "ev_1: up, ≥5.0pp" in result.text
    assert "ev_2: any, ≥3.0pp" in result.text
    assert "alert 4" in result.text
    assert "alert 5" not in result.text
    assert "Poller: stopped" in result.text
    assert len(queue) == 2


@pytest.mark.asyncio
async def test_list_watches_empty_with_running_poller(commands, poller):
    poller.start()
    try:
        result = await commands.list_watches()
    finally:
        poller.stop()
    assert "not watching any matches" in result.text
    assert "Poller: running every 120s" in result.text


# ── odds ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_odds_lookup_formats_percentages(commands, source, registry):
    source.probs["ev_3"] = 0.45
    result = await commands.odds("odds Real Madrid vs Barcelona")

    assert result.success
    assert "Real Madrid vs Barcelona" in result.text
    assert "45.0%" in result.text
    assert "25.0%" in result.text
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_odds_not_found(commands):
    result = await commands.odds("odds for the derby")
    assert result.success is False
    assert result.text == ODDS_USAGE


@pytest.mark.asyncio
async def test_odds_no_data(commands):
    result = await commands.odds("odds eventKey ev_1")
    assert result.success is False
    assert result.text == NO_DATA_TEXT


@pytest.mark.asyncio
async def test_odds_payment_required_exposes_message(commands, source):
    source.errors["ev_1"] = PaymentRequiredError(
        "Payment required: 0.01 USDC. Send payment to the receiver.", 402
    )
    result = await commands.odds("odds eventKey ev_1")
    assert result.success is False
    assert "Send payment to the receiver." in result.text


@pytest.mark.asyncio
async def test_odds_generic_failure(commands, source):
    source.errors["ev_1"] = BwapsError("BWAPs API error: Bad Gateway", 502)
    result = await commands.odds("odds eventKey ev_1")
    assert result.text == RETRY_TEXT


@pytest.mark.asyncio
async def test_odds_listing_failure(commands, source):
    source.list_error = BwapsError("timeout")
    result = await commands.odds("odds Arsenal vs Tottenham")
    assert result.success is False
    assert result.text == RETRY_TEXT


@pytest.mark.asyncio
async def test_odds_no_data_error_type(commands, source):
    source.errors["ev_2"] = NoDataError("empty pmf")
    result = await commands.odds("chances liverpool man city")
    assert result.text == NO_DATA_TEXT


# ── dispatch ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_dispatch_routes(commands, source, registry):
    source.probs["ev_1"] = 0.5

    watched = await dispatch(commands, "watch eventKey ev_1 4% up")
    assert watched is not None and "ev_1" in registry

    listed = await dispatch(commands, "list watches")
    assert listed is not None and "ev_1: up, ≥4.0pp" in listed.text

    odds = await dispatch(commands, "what are the odds for arsenal tottenham")
    assert odds is not None and "50.0%" in odds.text

    removed = await dispatch(commands, "stop watching eventKey ev_1")
    assert removed is not None and "ev_1" not in registry

    assert await dispatch(commands, "tell me a joke") is None


@pytest.mark.asyncio
async def test_rewatch_reports_existing_baseline_without_refetch(commands, source, registry):
    source.probs["ev_1"] = 0.5
    await commands.watch("watch eventKey ev_1 5%")
    source.probs["ev_1"] = 0.7
    calls_before = len(source.calls)

    result = await commands.watch("watch eventKey ev_1 2% up")

    assert result.success
    assert len(source.calls) == calls_before
    assert "Baseline: 50.0% home win." in result.text
    assert "2.0pp" in result.text
    assert registry.get("ev_1").direction == Direction.UP
    assert registry.get_observation("ev_1").home_win_prob == 0.5


@pytest.mark.asyncio
async def test_commands_without_poller(source, registry, queue):
    commands = WatchCommands(source, registry, queue)
    source.probs["ev_1"] = 0.55

    odds = await commands.odds("odds arsenal tottenham")
    assert odds.success and "55.0%" in odds.text

    listed = await commands.list_watches()
    assert "Poller: stopped" in listed.text

"""CLI tools for footy-watch (health, leases, odds lookup, discover)."""

from __future__ import annotations

import argparse
import asyncio
import sys

from footy_watch.alerts.queue import AlertQueue
from footy_watch.api.bwaps_client import BwapsClient
from footy_watch.api.errors import BwapsError
from footy_watch.api.schemas import Candidate
from footy_watch.commands import WatchCommands
from footy_watch.config import Settings
from footy_watch.engine.registry import WatchRegistry
from footy_watch.main import configure_logging


async def run_health() -> int:
    settings = Settings()
    configure_logging(settings.log_level)
    client = BwapsClient(settings)
    try:
        health = await client.check_health()
    except BwapsError as exc:
        print(f"Unhealthy: {exc}")
        return 1
    finally:
        await client.close()
    print(f"{health.name or 'bwaps'}: {'ok' if health.ok else 'NOT ok'} ({health.ts})")
    return 0 if health.ok else 1


async def find_leases(
    client: BwapsClient, home: str | None = None, away: str | None = None
) -> list[Candidate]:
    """All leases, or the single lease matching both team names."""
    if home and away:
        lease = await client.find_lease_by_teams(home, away)
        return [Candidate.from_lease(lease)] if lease is not None else []
    return await client.list_candidates()


async def run_leases(home: str | None = None, away: str | None = None) -> int:
    settings = Settings()
    configure_logging(settings.log_level)
    client = BwapsClient(settings)
    try:
        candidates = await find_leases(client, home, away)
    except BwapsError as exc:
        print(f"Failed to list leases: {exc}")
        return 1
    finally:
        await client.close()

    if not candidates:
        print("No matching leases." if home and away else "No active leases.")
        return 0
    for c in candidates:
        status = "past" if c.is_past else "upcoming"
        print(f"  {c.key:30s} {c.home_team} vs {c.away_team}  {c.start_time} ({status})")
    return 0


async def run_odds(text: str) -> int:
    settings = Settings()
    configure_logging(settings.log_level)
    client = BwapsClient(settings)
    registry = WatchRegistry()
    queue = AlertQueue(max_size=settings.alert_queue_max_size)
    commands = WatchCommands(client, registry, queue)
    try:
        result = await commands.odds(text)
    finally:
        await client.close()
    print(result.text)
    return 0 if result.success else 1


async def run_discover(polymarket_url: str, kalshi_url: str) -> int:
    settings = Settings()
    configure_logging(settings.log_level)
    client = BwapsClient(settings)
    try:
        resp = await client.discover_event(polymarket_url, kalshi_url)
    except BwapsError as exc:
        print(f"Discover failed: {exc}")
        return 1
    finally:
        await client.close()

    print(f"Lease: {resp.ready_to_ingest.lease_id}")
    for warning in resp.warnings:
        print(f"  warning: {warning}")
    return 0


def cli() -> None:
    parser = argparse.ArgumentParser(prog="footy-watch-tools", description="footy-watch CLI tools")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("health", help="Check the BWAPs API health endpoint")
    ls = sub.add_parser("leases", help="List active market leases")
    ls.add_argument("--home", help="Home team name (use with --away)")
    ls.add_argument("--away", help="Away team name (use with --home)")

    od = sub.add_parser("odds", help="Look up win probabilities for a match")
    od.add_argument("text", nargs="+", help='Free text, e.g. "Arsenal vs Tottenham" or "eventKey ev_1"')

    dc = sub.add_parser("discover", help="Discover an event from source market URLs")
    dc.add_argument("polymarket_url")
    dc.add_argument("kalshi_url")

    args = parser.parse_args()

    if args.command == "health":
        code = asyncio.run(run_health())
    elif args.command == "leases":
        code = asyncio.run(run_leases(args.home, args.away))
    elif args.command == "odds":
        code = asyncio.run(run_odds(" ".join(args.text)))
    elif args.command == "discover":
        code = asyncio.run(run_discover(args.polymarket_url, args.kalshi_url))
    else:
        parser.print_help()
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    cli()

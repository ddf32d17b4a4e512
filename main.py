"""Tanzparty collector

Simple CLI for collecting dance events and inspecting the store.
"""

import argparse
import asyncio
import json
from datetime import date

from tanzparty.agents.orchestrator import build_collector
from tanzparty.config import settings
from tanzparty.services.database import close_pool, create_pool, init_schema
from tanzparty.services.event_store import EventStore
from tanzparty.services.logger import configure_logging
from tanzparty.services.visit_ledger import VisitLedger
from tanzparty.tools.query_builder import build_search_query


async def _open_pool():
    return await create_pool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )


async def run_collect(query: str) -> None:
    """Collect events for one search query."""
    print(f"Search query: {query}")
    print("-" * 50)

    pool = await _open_pool()
    try:
        collector = build_collector(pool)
        events = await collector.collect(query)
    finally:
        await close_pool(pool)

    print(f"\n[*] URLs processed: {len(collector.last_outcomes)}")
    for outcome in collector.last_outcomes:
        status = "skipped (recently visited)" if outcome.skipped else outcome.reason
        marker = "+" if outcome.success else "-"
        print(f"  [{marker}] {outcome.url}: {status}")

    print(f"\n[*] New events: {len(events)}")
    for event in events:
        styles = ", ".join(event.styles or []) or "n/a"
        print(f"  {event.first_date.isoformat()}  {event.name}  ({styles})")
        print(f"     {event.address}")


async def run_events(city: str | None, day: date | None, style: str | None) -> None:
    pool = await _open_pool()
    try:
        events = await EventStore(pool, recency_days=settings.event_url_recency_days).find_events(
            city=city, day=day, style=style
        )
    finally:
        await close_pool(pool)

    if not events:
        print("No stored events match.")
        return
    for event in events:
        print(json.dumps(event.model_dump(mode="json", by_alias=True), ensure_ascii=False))


async def run_stats(url: str | None) -> None:
    pool = await _open_pool()
    try:
        ledger = VisitLedger(pool, cooldown_days=settings.url_revisit_cooldown_days)
        stats = await ledger.stats()
        visit = await ledger.get_visit(url) if url else None
    finally:
        await close_pool(pool)

    print(json.dumps(stats.to_dict(), indent=2))
    if url:
        if visit is None:
            print(f"\n{url}: never visited")
        else:
            print(
                f"\n{url}: last visited {visit.visited_at.isoformat()} "
                f"(success: {visit.extraction_success}, reason: {visit.failure_reason})"
            )


async def run_cleanup() -> None:
    pool = await _open_pool()
    try:
        deleted = await VisitLedger(pool, cooldown_days=settings.url_revisit_cooldown_days).cleanup_old_visits()
    finally:
        await close_pool(pool)
    print(f"Removed {deleted} old visited URLs")


async def run_init_db() -> None:
    pool = await _open_pool()
    try:
        await init_schema(pool)
    finally:
        await close_pool(pool)
    print("Schema ready")


def _resolve_query(args: argparse.Namespace, parser: argparse.ArgumentParser) -> str:
    if args.query:
        return args.query
    if not args.city:
        parser.error("collect needs --query or --city")
    return build_search_query(
        args.city,
        args.date or date.today(),
        args.style,
        domain_suffix=settings.target_domain_suffix,
    )


def main():
    parser = argparse.ArgumentParser(description="Tanzparty event collector")
    parser.add_argument("--log-level", help="Log level (default: from config)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    collect = subparsers.add_parser("collect", help="Search, extract and store events")
    collect.add_argument("--query", "-q", help="Raw search query")
    collect.add_argument("--city", "-c", help="City to search in")
    collect.add_argument("--date", "-d", type=date.fromisoformat, help="Event date (YYYY-MM-DD)")
    collect.add_argument("--style", "-s", help="Dance style (default: Salsa)")

    events = subparsers.add_parser("events", help="List stored events")
    events.add_argument("--city", "-c")
    events.add_argument("--date", "-d", type=date.fromisoformat)
    events.add_argument("--style", "-s")

    stats = subparsers.add_parser("stats", help="Show visited-URL ledger statistics")
    stats.add_argument("--url", help="Also show the ledger entry for this URL")

    subparsers.add_parser("cleanup", help="Delete stale visited-URL entries")
    subparsers.add_parser("init-db", help="Create database tables")

    args = parser.parse_args()
    configure_logging(level=args.log_level)

    if args.command == "collect":
        asyncio.run(run_collect(_resolve_query(args, collect)))
    elif args.command == "events":
        asyncio.run(run_events(args.city, args.date, args.style))
    elif args.command == "stats":
        asyncio.run(run_stats(args.url))
    elif args.command == "cleanup":
        asyncio.run(run_cleanup())
    elif args.command == "init-db":
        asyncio.run(run_init_db())


if __name__ == "__main__":
    main()

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any
from uuid import uuid4

import asyncpg
import pytest

from tanzparty.models.events import EventCandidate
from tanzparty.services import event_store, visit_ledger
from tanzparty.services.database import SCHEMA_STATEMENTS

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeConnection:
    """Answers the handful of statements the store and ledger issue."""

    def __init__(self, pool: "FakePool"):
        self.pool = pool

    def _enter(self, query: str, args: tuple[Any, ...]) -> None:
        self.pool.queries.append((query, args))
        failure = self.pool.failures.get(query)
        if failure is not None:
            raise failure

    async def fetchrow(self, query: str, *args: Any) -> dict[str, Any] | None:
        self._enter(query, args)
        pool = self.pool
        if query == event_store.RECENT_URL_SQL:
            url, cutoff, before = args
            for row in pool.events:
                if row["source_url"] != url or row["processed_at"] <= cutoff:
                    continue
                if before is None or row["processed_at"] < before:
                    return {"?column?": 1}
            return None
        if query == event_store.DUPLICATE_EVENT_SQL:
            address, day = args
            hit = any(r["address"] == address and r["date"] == day for r in pool.events)
            return {"?column?": 1} if hit else None
        if query == visit_ledger.RECENT_VISIT_SQL:
            url, cutoff = args
            row = pool.visits.get(url)
            return {"id": row["id"]} if row and row["visited_at"] > cutoff else None
        if query == visit_ledger.GET_VISIT_SQL:
            return pool.visits.get(args[0])
        if query == visit_ledger.VISIT_STATS_SQL:
            (cutoff,) = args
            rows = list(pool.visits.values())
            return {
                "total_urls": len(rows),
                "successful_extractions": sum(1 for r in rows if r["extraction_success"]),
                "failed_extractions": sum(1 for r in rows if not r["extraction_success"]),
                "recent_visits": sum(1 for r in rows if r["visited_at"] > cutoff),
            }
        raise AssertionError(f"unexpected fetchrow: {query}")

    async def fetchval(self, query: str, *args: Any) -> Any:
        self._enter(query, args)
        if query != event_store.INSERT_EVENT_SQL:
            raise AssertionError(f"unexpected fetchval: {query}")
        (
            name, styles, day, workshops, party, address, city,
            source_url, recurrence, recurrence_type, venue_type, processed_at,
        ) = args
        if any(r["address"] == address and r["date"] == day for r in self.pool.events):
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        row = {
            "id": uuid4(),
            "name": name,
            "styles": styles,
            "date": day,
            "workshops": workshops,
            "party": party,
            "address": address,
            "city": city,
            "source_url": source_url,
            "recurrence": recurrence,
            "recurrence_type": recurrence_type,
            "venue_type": venue_type,
            "processed_at": processed_at,
        }
        self.pool.events.append(row)
        return row["id"]

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        self._enter(query, args)
        if not query.startswith(event_store.FIND_EVENTS_SQL):
            raise AssertionError(f"unexpected fetch: {query}")
        return sorted(self.pool.events, key=lambda r: (r["date"], r["name"]))

    async def execute(self, query: str, *args: Any) -> str:
        self._enter(query, args)
        pool = self.pool
        if query == visit_ledger.UPSERT_VISIT_SQL:
            url, visited_at, success, reason = args
            existing = pool.visits.get(url)
            if existing is None:
                pool.visit_ids += 1
                pool.visits[url] = {
                    "id": pool.visit_ids,
                    "url": url,
                    "visited_at": visited_at,
                    "extraction_success": success,
                    "failure_reason": reason,
                    "created_at": visited_at,
                }
                return "INSERT 0 1"
            existing.update(visited_at=visited_at, extraction_success=success, failure_reason=reason)
            return "INSERT 0 1"
        if query == visit_ledger.CLEANUP_VISITS_SQL:
            (cutoff,) = args
            stale = [url for url, row in pool.visits.items() if row["visited_at"] < cutoff]
            for url in stale:
                del pool.visits[url]
            return f"DELETE {len(stale)}"
        if query in SCHEMA_STATEMENTS:
            return "CREATE"
        raise AssertionError(f"unexpected execute: {query}")


class FakePool:
    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []
        self.visits: dict[str, dict[str, Any]] = {}
        self.visit_ids = 0
        self.queries: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, BaseException] = {}

    @asynccontextmanager
    async def acquire(self):
        yield FakeConnection(self)

    def statements(self, query: str) -> list[tuple[Any, ...]]:
        return [args for q, args in self.queries if q == query]


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def clock():
    return lambda: NOW


def make_candidate(**overrides: Any) -> EventCandidate:
    data: dict[str, Any] = {
        "name": "Salsa Night im Hafen",
        "styles": "Salsa, Bachata",
        "dates": ["2025-06-02"],
        "address": "Main St 1, 10115 Berlin",
        "city": "Berlin",
        "source_url": "https://a.de/x",
        "venue_type": "Indoor",
    }
    data.update(overrides)
    return EventCandidate.model_validate(data)


@pytest.fixture
def candidate_factory():
    return make_candidate


@pytest.fixture
def today() -> date:
    return date(2025, 6, 1)

"""Deduplicating persistence for extracted events."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone
from enum import StrEnum
from typing import Any, Callable

import asyncpg
from loguru import logger

from tanzparty.models.events import EventCandidate, StoredEvent, normalize_styles
from tanzparty.services.database import DB_ERRORS, coerce_json
from tanzparty.services.logger import log_db_operation

RECENT_URL_SQL = """
    SELECT 1 FROM events
    WHERE source_url = $1
      AND processed_at > $2
      AND ($3::timestamptz IS NULL OR processed_at < $3)
    LIMIT 1
"""

DUPLICATE_EVENT_SQL = "SELECT 1 FROM events WHERE address = $1 AND date = $2 LIMIT 1"

INSERT_EVENT_SQL = """
    INSERT INTO events (
        name, styles, date, workshops, party, address, city,
        source_url, recurrence, recurrence_type, venue_type, processed_at
    )
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
    RETURNING id
"""

FIND_EVENTS_SQL = """
    SELECT id, name, styles, date, workshops, party, address, city,
           source_url, recurrence, recurrence_type, venue_type, processed_at
    FROM events
"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SaveResult(StrEnum):
    SAVED = "saved"
    DUPLICATE = "duplicate"
    INVALID = "invalid"

    def __bool__(self) -> bool:
        return self is SaveResult.SAVED


class EventStoreError(RuntimeError):
    """The events table could not be read or written."""


def _has_required_fields(candidate: EventCandidate) -> bool:
    for value in (candidate.name, candidate.address, candidate.city):
        if not isinstance(value, str) or not value.strip():
            return False
    return bool(candidate.dates)


class EventStore:
    def __init__(
        self,
        pool: Any,
        *,
        recency_days: int = 3,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.pool = pool
        self.recency_days = recency_days
        self._clock = clock

    async def is_url_recent(self, url: str, *, before: datetime | None = None) -> bool:
        """True when an event from ``url`` was stored inside the recency window.

        Rows written at or after ``before`` are ignored, so events saved earlier
        in the same run do not block their siblings from the same page.
        """
        cutoff = self._clock() - timedelta(days=self.recency_days)
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(RECENT_URL_SQL, url, cutoff, before)
        return row is not None

    async def is_duplicate_event(self, address: str, day: date) -> bool:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(DUPLICATE_EVENT_SQL, address, day)
        return row is not None

    async def save_if_unique(
        self,
        candidate: EventCandidate,
        *,
        run_started_at: datetime | None = None,
    ) -> SaveResult:
        """Insert the candidate unless it is invalid or already known.

        Raises EventStoreError when the store itself fails.
        """
        if not _has_required_fields(candidate):
            logger.info(f"Rejecting incomplete event {candidate.name!r} from {candidate.source_url}")
            return SaveResult.INVALID

        day = candidate.first_date
        try:
            if await self.is_url_recent(candidate.source_url, before=run_started_at):
                logger.info(f"Source URL processed recently, skipping event: {candidate.source_url}")
                return SaveResult.DUPLICATE
            if await self.is_duplicate_event(candidate.address, day):
                logger.info(f"Event already stored for {candidate.address} on {day}")
                return SaveResult.DUPLICATE

            async with self.pool.acquire() as conn:
                event_id = await conn.fetchval(INSERT_EVENT_SQL, *self._insert_args(candidate))
        except asyncpg.UniqueViolationError:
            logger.info(f"Event already stored for {candidate.address} on {day} (constraint)")
            return SaveResult.DUPLICATE
        except DB_ERRORS as exc:
            log_db_operation("insert", "events", "error", error=str(exc))
            raise EventStoreError(str(exc)) from exc

        log_db_operation("insert", "events", "success", details=f"id={event_id} date={day}")
        return SaveResult.SAVED

    def _insert_args(self, candidate: EventCandidate) -> tuple[Any, ...]:
        party = candidate.party.model_dump() if candidate.party else None
        return (
            candidate.name,
            normalize_styles(candidate.styles),
            candidate.first_date,
            json.dumps([w.model_dump() for w in candidate.workshops]),
            json.dumps(party) if party is not None else None,
            candidate.address,
            candidate.city,
            candidate.source_url,
            candidate.recurrence,
            candidate.recurrence_type.value if candidate.recurrence_type else None,
            candidate.venue_type.value,
            self._clock(),
        )

    async def find_events(
        self,
        city: str | None = None,
        day: date | None = None,
        style: str | None = None,
    ) -> list[StoredEvent]:
        """Look up stored events by city (matched on the address), date and style."""
        conditions: list[str] = []
        params: list[Any] = []
        if city:
            params.append(f"%{city.strip().lower()}%")
            conditions.append(f"LOWER(address) LIKE ${len(params)}")
        if day:
            params.append(day)
            conditions.append(f"date = ${len(params)}")
        if style:
            params.append(f"%{style.strip()}%")
            conditions.append(f"array_to_string(styles, ',') ILIKE ${len(params)}")

        query = FIND_EVENTS_SQL
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY date ASC, name ASC"

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, *params)
        except DB_ERRORS as exc:
            log_db_operation("select", "events", "error", error=str(exc))
            raise EventStoreError(str(exc)) from exc

        events = []
        for r in rows:
            row = dict(r)
            row["workshops"] = coerce_json(row.get("workshops"), [])
            row["party"] = coerce_json(row.get("party"), None)
            events.append(StoredEvent.model_validate(row))
        return events

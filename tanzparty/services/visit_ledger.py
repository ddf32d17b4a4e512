"""Visited-URL ledger: revisit cooldown, outcome recording and maintenance."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from loguru import logger

from tanzparty.models.visits import VisitRecord, VisitStats
from tanzparty.services.database import DB_ERRORS
from tanzparty.services.logger import log_db_operation

RECENT_VISIT_SQL = "SELECT id FROM visited_urls WHERE url = $1 AND visited_at > $2 LIMIT 1"

UPSERT_VISIT_SQL = """
    INSERT INTO visited_urls (url, visited_at, extraction_success, failure_reason, created_at)
    VALUES ($1, $2, $3, $4, $2)
    ON CONFLICT (url)
    DO UPDATE SET
        visited_at = EXCLUDED.visited_at,
        extraction_success = EXCLUDED.extraction_success,
        failure_reason = EXCLUDED.failure_reason
"""

GET_VISIT_SQL = """
    SELECT url, visited_at, extraction_success, failure_reason, created_at
    FROM visited_urls
    WHERE url = $1
"""

CLEANUP_VISITS_SQL = "DELETE FROM visited_urls WHERE visited_at < $1"

VISIT_STATS_SQL = """
    SELECT
        COUNT(*) AS total_urls,
        COUNT(*) FILTER (WHERE extraction_success) AS successful_extractions,
        COUNT(*) FILTER (WHERE NOT extraction_success) AS failed_extractions,
        COUNT(*) FILTER (WHERE visited_at > $1) AS recent_visits
    FROM visited_urls
"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _deleted_count(status: str | None) -> int:
    # asyncpg returns the command tag, e.g. "DELETE 3"
    try:
        return int((status or "").rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class VisitLedger:
    def __init__(
        self,
        pool: Any,
        *,
        cooldown_days: int = 3,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.pool = pool
        self.cooldown_days = cooldown_days
        self._clock = clock

    def _cooldown_cutoff(self, multiplier: int = 1) -> datetime:
        return self._clock() - timedelta(days=self.cooldown_days * multiplier)

    async def recently_visited(self, url: str) -> bool:
        """True when the URL was visited inside the cooldown. Lookup failures count as not visited."""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(RECENT_VISIT_SQL, url, self._cooldown_cutoff())
        except DB_ERRORS as exc:
            logger.warning(f"Revisit lookup failed for {url}, processing anyway: {exc}")
            return False

        if row is not None:
            logger.info(f"URL recently visited (within {self.cooldown_days} days): {url}")
            return True
        return False

    async def record_visit(self, url: str, success: bool, reason: str | None = None) -> bool:
        """Upsert the latest outcome for ``url``; returns False when the write failed."""
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(UPSERT_VISIT_SQL, url, self._clock(), bool(success), reason)
        except DB_ERRORS as exc:
            log_db_operation("upsert", "visited_urls", "error", details=url, error=str(exc))
            return False

        log_db_operation("upsert", "visited_urls", "success", details=f"{url} success={success} reason={reason}")
        return True

    async def get_visit(self, url: str) -> VisitRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(GET_VISIT_SQL, url)
        if row is None:
            return None
        return VisitRecord(
            url=row["url"],
            visited_at=row["visited_at"],
            extraction_success=bool(row["extraction_success"]),
            failure_reason=row["failure_reason"],
            created_at=row["created_at"],
        )

    async def cleanup_old_visits(self) -> int:
        """Delete ledger rows older than twice the cooldown and return how many went."""
        try:
            async with self.pool.acquire() as conn:
                status = await conn.execute(CLEANUP_VISITS_SQL, self._cooldown_cutoff(multiplier=2))
        except DB_ERRORS as exc:
            log_db_operation("delete", "visited_urls", "error", error=str(exc))
            return 0

        deleted = _deleted_count(status)
        if deleted:
            logger.info(f"Cleaned up {deleted} old visited URLs")
        return deleted

    async def stats(self) -> VisitStats:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(VISIT_STATS_SQL, self._cooldown_cutoff())
        except DB_ERRORS as exc:
            log_db_operation("select", "visited_urls", "error", error=str(exc))
            return VisitStats(cooldown_days=self.cooldown_days)

        if row is None:
            return VisitStats(cooldown_days=self.cooldown_days)
        return VisitStats(
            total_urls=int(row["total_urls"] or 0),
            successful_extractions=int(row["successful_extractions"] or 0),
            failed_extractions=int(row["failed_extractions"] or 0),
            recent_visits=int(row["recent_visits"] or 0),
            cooldown_days=self.cooldown_days,
        )

"""PostgreSQL connection pool and schema bootstrap using asyncpg."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import asyncpg

from tanzparty.services.logger import log_db_operation

# Failures that mean "the store could not answer", as opposed to a constraint hit.
DB_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS events (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        styles TEXT[],
        date DATE NOT NULL,
        workshops JSONB NOT NULL DEFAULT '[]'::jsonb,
        party JSONB,
        address TEXT NOT NULL,
        city TEXT,
        source_url TEXT NOT NULL,
        recurrence TEXT,
        recurrence_type TEXT,
        venue_type TEXT NOT NULL DEFAULT 'Unspecified',
        processed_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_events_address_date ON events(address, date)",
    "CREATE INDEX IF NOT EXISTS idx_events_source_url ON events(source_url, processed_at)",
    """
    CREATE TABLE IF NOT EXISTS visited_urls (
        id SERIAL PRIMARY KEY,
        url TEXT NOT NULL UNIQUE,
        visited_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        extraction_success BOOLEAN NOT NULL DEFAULT FALSE,
        failure_reason TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_visited_urls_url ON visited_urls(url)",
    "CREATE INDEX IF NOT EXISTS idx_visited_urls_visited_at ON visited_urls(visited_at)",
)


async def create_pool(
    dsn: str,
    *,
    min_size: int = 1,
    max_size: int = 10,
) -> asyncpg.Pool:
    """Open a new asyncpg pool for the given DSN."""
    if not dsn:
        raise RuntimeError("Database not configured. Set DATABASE_URL in .env")
    return await asyncpg.create_pool(dsn, min_size=min_size, max_size=max_size)


async def close_pool(pool: asyncpg.Pool | None) -> None:
    """Close the database connection pool."""
    if pool is not None:
        await pool.close()


async def init_schema(pool: Any) -> None:
    """Create the events and visited_urls tables if they do not exist."""
    async with pool.acquire() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)
    log_db_operation("init_schema", "events,visited_urls", "success")


def coerce_json(value: Any, default: Any) -> Any:
    """Normalize JSONB columns that come back as strings without a type codec."""
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
    return value

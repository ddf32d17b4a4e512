from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class VisitRecord:
    url: str
    visited_at: datetime
    extraction_success: bool
    failure_reason: str | None
    created_at: datetime


@dataclass(slots=True)
class VisitStats:
    total_urls: int = 0
    successful_extractions: int = 0
    failed_extractions: int = 0
    recent_visits: int = 0
    cooldown_days: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_urls": self.total_urls,
            "successful_extractions": self.successful_extractions,
            "failed_extractions": self.failed_extractions,
            "recent_visits": self.recent_visits,
            "cooldown_days": self.cooldown_days,
        }


class VisitReason:
    """Failure/success reasons written to the visited-URL ledger."""

    ROBOTS_DISALLOWED = "robots.txt disallowed"
    CONTENT_FILTERED = "content filtering failed"
    NO_EVENTS = "no valid event metadata extracted"
    DUPLICATE = "duplicate event"
    INVALID = "invalid event"

    @staticmethod
    def saved(saved: int, total: int) -> str:
        return f"saved {saved}/{total} events"

    @staticmethod
    def database_error(message: str) -> str:
        return f"database error: {message}"

    @staticmethod
    def unexpected_error(message: str) -> str:
        return f"unexpected error: {message}"

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from loguru import logger

from tanzparty.agents.extractor_agent import EventExtractor
from tanzparty.config import settings
from tanzparty.llm_client import client as llm_client
from tanzparty.models.events import EventCandidate
from tanzparty.models.visits import VisitReason
from tanzparty.services.event_store import EventStore, EventStoreError, SaveResult
from tanzparty.services.logger import log_url_outcome
from tanzparty.services.visit_ledger import VisitLedger
from tanzparty.tools import search_provider
from tanzparty.tools.page_fetcher import PageFetcher
from tanzparty.tools.robots_check import RobotsChecker

SearchFn = Callable[[str], Awaitable[list[str]]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class UrlOutcome:
    """What happened to one candidate URL during a collection run."""

    url: str
    skipped: bool = False
    success: bool = False
    reason: str | None = None
    saved: list[EventCandidate] = field(default_factory=list)


class EventCollector:
    """Drives one query through search, gates, fetch, extraction and storage.

    URLs are processed strictly one after another. Every URL that passes the
    revisit gate gets exactly one ledger entry describing where it stopped.
    """

    def __init__(
        self,
        *,
        search: SearchFn,
        robots: RobotsChecker,
        ledger: VisitLedger,
        fetcher: PageFetcher,
        extractor: EventExtractor,
        store: EventStore,
        max_urls: int = 5,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.search = search
        self.robots = robots
        self.ledger = ledger
        self.fetcher = fetcher
        self.extractor = extractor
        self.store = store
        self.max_urls = max(int(max_urls), 0)
        self._clock = clock
        self.last_outcomes: list[UrlOutcome] = []

    async def collect(self, query: str) -> list[EventCandidate]:
        """Run the pipeline for ``query`` and return the newly stored events."""
        run_started_at = self._clock()
        urls = await self.search(query)
        if not urls:
            logger.info(f"No candidate URLs for {query!r}")
            self.last_outcomes = []
            return []

        selected = urls[: self.max_urls]
        logger.info(f"Processing {len(selected)}/{len(urls)} URLs for {query!r}")

        outcomes: list[UrlOutcome] = []
        stored: list[EventCandidate] = []
        for url in selected:
            try:
                outcome = await self._process_url(url, run_started_at)
            except Exception as exc:
                logger.exception(f"Unexpected failure while processing {url}")
                outcome = UrlOutcome(url=url, reason=VisitReason.unexpected_error(str(exc)))

            if not outcome.skipped:
                await self.ledger.record_visit(url, outcome.success, outcome.reason)
                log_url_outcome(url, outcome.success, outcome.reason)
            outcomes.append(outcome)
            stored.extend(outcome.saved)

        self.last_outcomes = outcomes
        logger.info(f"Stored {len(stored)} new events for {query!r}")
        return stored

    async def _process_url(self, url: str, run_started_at: datetime) -> UrlOutcome:
        if await self.ledger.recently_visited(url):
            return UrlOutcome(url=url, skipped=True)

        if not await self.robots.is_allowed(url):
            return UrlOutcome(url=url, reason=VisitReason.ROBOTS_DISALLOWED)

        text = await self.fetcher.fetch(url)
        if not text:
            return UrlOutcome(url=url, reason=VisitReason.CONTENT_FILTERED)

        candidates = await self.extractor.extract(text, url)
        if not candidates:
            return UrlOutcome(url=url, reason=VisitReason.NO_EVENTS)

        return await self._store_candidates(url, candidates, run_started_at)

    async def _store_candidates(
        self,
        url: str,
        candidates: list[EventCandidate],
        run_started_at: datetime,
    ) -> UrlOutcome:
        saved: list[EventCandidate] = []
        results: list[SaveResult] = []
        db_error: str | None = None
        for candidate in candidates:
            try:
                result = await self.store.save_if_unique(candidate, run_started_at=run_started_at)
            except EventStoreError as exc:
                logger.warning(f"Could not store {candidate.name!r} from {url}: {exc}")
                db_error = db_error or str(exc)
                continue
            results.append(result)
            if result:
                saved.append(candidate)

        if saved:
            return UrlOutcome(
                url=url,
                success=True,
                reason=VisitReason.saved(len(saved), len(candidates)),
                saved=saved,
            )
        if db_error is not None:
            return UrlOutcome(url=url, reason=VisitReason.database_error(db_error))
        if SaveResult.DUPLICATE in results:
            return UrlOutcome(url=url, reason=VisitReason.DUPLICATE)
        return UrlOutcome(url=url, reason=VisitReason.INVALID)


def build_collector(pool: Any, *, llm: Any | None = None) -> EventCollector:
    """Wire an EventCollector from settings around an open database pool."""

    async def _search(query: str) -> list[str]:
        return await search_provider.search(
            query,
            max_results=settings.search_max_results,
            domain_suffix=settings.target_domain_suffix,
        )

    return EventCollector(
        search=_search,
        robots=RobotsChecker(
            user_agent=settings.bot_user_agent,
            timeout_s=settings.robots_timeout_s,
        ),
        ledger=VisitLedger(pool, cooldown_days=settings.url_revisit_cooldown_days),
        fetcher=PageFetcher(
            user_agent=settings.bot_user_agent,
            delay_s=settings.fetch_delay_s,
            timeout_s=settings.fetch_timeout_s,
        ),
        extractor=EventExtractor(
            llm or llm_client(),
            max_chars=settings.extractor_max_chars,
            occurrences=settings.recurrence_occurrences,
        ),
        store=EventStore(pool, recency_days=settings.event_url_recency_days),
        max_urls=settings.max_urls_per_query,
    )

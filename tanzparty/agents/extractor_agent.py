from __future__ import annotations

from datetime import date
from typing import Callable, Protocol

from loguru import logger

from tanzparty.llm_client import LLMError
from tanzparty.models.events import DANCE_STYLES, EventCandidate, RecurrenceType, candidate_from_payload
from tanzparty.services.prompt_store import render_prompt
from tanzparty.tools.json_repair import repair_and_parse
from tanzparty.tools.query_builder import GERMAN_WEEKDAYS

PROMPT_KEY = "extractor.event_prompt"


class CompletionClient(Protocol):
    async def complete(self, prompt: str, *, caller: str = ...) -> str: ...


def build_prompt(
    page_text: str,
    source_url: str,
    *,
    today: date,
    occurrences: int = 4,
) -> str:
    return render_prompt(
        PROMPT_KEY,
        today_iso=today.isoformat(),
        today_weekday=GERMAN_WEEKDAYS[today.weekday()],
        source_url=source_url,
        styles=", ".join(DANCE_STYLES),
        occurrences=occurrences,
        recurrence_types=", ".join(f'"{t.value}"' for t in RecurrenceType),
        page_text=page_text,
    )


class EventExtractor:
    """Turns cleaned page text into validated event candidates via the LLM."""

    name = "extractor"

    def __init__(
        self,
        llm: CompletionClient,
        *,
        max_chars: int = 6000,
        occurrences: int = 4,
        today: Callable[[], date] | None = None,
    ):
        self.llm = llm
        self.max_chars = max(int(max_chars), 1)
        self.occurrences = max(int(occurrences), 1)
        self._today = today or date.today

    async def extract(self, text: str, source_url: str) -> list[EventCandidate] | None:
        """Return the valid candidates found on the page, or None when there are none."""
        page_text = text[: self.max_chars]
        prompt = build_prompt(
            page_text,
            source_url,
            today=self._today(),
            occurrences=self.occurrences,
        )

        try:
            raw = await self.llm.complete(prompt, caller=self.name)
        except LLMError as exc:
            logger.warning(f"Extraction call failed for {source_url}: {exc}")
            return None

        payloads = repair_and_parse(raw)
        if payloads is None:
            logger.info(f"Model marked {source_url} as not a party/social event")
            return None
        if not payloads:
            logger.warning(f"No JSON could be recovered from model output for {source_url}")
            return None

        candidates = [
            candidate
            for candidate in (candidate_from_payload(p, source_url) for p in payloads)
            if candidate is not None
        ]
        dropped = len(payloads) - len(candidates)
        if dropped:
            logger.info(f"Dropped {dropped}/{len(payloads)} incomplete events from {source_url}")
        return candidates or None

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from tanzparty.config import settings

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
GOOGLE_MAX_PAGE_SIZE = 10


@dataclass
class SearchResult:
    title: str
    url: str
    content: str
    score: float = 0.0


def positional_score(index: int, total: int) -> float:
    """Rank-derived score for providers that do not report relevance."""
    return max(0.0, 1.0 - (index / max(total, 1)))


async def search(
    query: str,
    *,
    max_results: int = 10,
    timeout_s: float = 30.0,
) -> list[SearchResult]:
    """Query Google Programmable Search (first result page only)."""
    if not settings.google_api_key or not settings.google_cx:
        raise RuntimeError("GOOGLE_API_KEY or GOOGLE_CX is not configured")

    params: dict[str, Any] = {
        "q": query,
        "key": settings.google_api_key,
        "cx": settings.google_cx,
        "num": max(1, min(max_results, GOOGLE_MAX_PAGE_SIZE)),
    }

    async with httpx.AsyncClient(timeout=timeout_s) as client:
        response = await client.get(GOOGLE_SEARCH_URL, params=params)
        response.raise_for_status()
        payload = response.json()

    items = [item for item in payload.get("items") or [] if item.get("link")]
    return [
        SearchResult(
            title=item.get("title", ""),
            url=item["link"],
            content=item.get("snippet", ""),
            score=positional_score(idx, len(items)),
        )
        for idx, item in enumerate(items)
    ]

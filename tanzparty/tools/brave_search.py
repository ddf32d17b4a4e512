from __future__ import annotations

from typing import Any

import httpx

from tanzparty.config import settings
from tanzparty.tools.google_search import SearchResult, positional_score

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
BRAVE_MAX_PAGE_SIZE = 20


async def search(
    query: str,
    *,
    max_results: int = 10,
    timeout_s: float = 30.0,
) -> list[SearchResult]:
    """Brave web search restricted to the German market, first page only."""
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "count": max(1, min(max_results, BRAVE_MAX_PAGE_SIZE)),
        "country": "DE",
        "search_lang": "de",
    }
    headers = {
        "Accept": "application/json",
        "X-Subscription-Token": settings.brave_api_key,
    }

    async with httpx.AsyncClient(timeout=timeout_s) as client:
        response = await client.get(BRAVE_SEARCH_URL, params=params, headers=headers)
        response.raise_for_status()
        payload = response.json()

    hits = [hit for hit in (payload.get("web") or {}).get("results") or [] if hit.get("url")]
    return [
        SearchResult(
            title=hit.get("title", ""),
            url=hit["url"],
            content=(hit.get("description") or "").strip(),
            score=positional_score(idx, len(hits)),
        )
        for idx, hit in enumerate(hits)
    ]

from __future__ import annotations

from tavily import AsyncTavilyClient

from tanzparty.config import settings
from tanzparty.tools.google_search import SearchResult


async def search(
    query: str,
    *,
    max_results: int = 10,
) -> list[SearchResult]:
    """Tavily basic-depth web search; relevance scores come from Tavily."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    response = await client.search(
        query=query,
        search_depth="basic",
        max_results=max_results,
        topic="general",
    )

    hits = response.get("results") or []
    return [
        SearchResult(
            title=hit.get("title", ""),
            url=hit["url"],
            content=hit.get("content", ""),
            score=float(hit.get("score") or 0.0),
        )
        for hit in hits
        if hit.get("url")
    ]

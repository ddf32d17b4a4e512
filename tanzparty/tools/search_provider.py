from __future__ import annotations

from loguru import logger

from tanzparty.config import settings
from tanzparty.tools import brave_search, google_search, tavily_search
from tanzparty.tools.google_search import SearchResult
from tanzparty.tools.web_utils import matches_domain_suffix

SUPPORTED_PROVIDERS = ("google", "brave", "tavily")


async def _provider_results(provider: str, query: str, max_results: int) -> list[SearchResult]:
    if provider == "google":
        return await google_search.search(
            query,
            max_results=max_results,
            timeout_s=settings.search_timeout_s,
        )
    if provider == "brave":
        return await brave_search.search(
            query,
            max_results=max_results,
            timeout_s=settings.search_timeout_s,
        )
    if provider == "tavily":
        return await tavily_search.search(query, max_results=max_results)
    raise ValueError(f"Unsupported SEARCH_PROVIDER: {provider}")


def filter_by_domain_suffix(urls: list[str], suffix: str) -> list[str]:
    return [url for url in urls if matches_domain_suffix(url, suffix)]


async def search(
    query: str,
    *,
    max_results: int | None = None,
    domain_suffix: str | None = None,
) -> list[str]:
    """Return candidate URLs for a query, restricted to the target country domain.

    Never raises: provider failures are logged and yield an empty list.
    """
    provider = settings.search_provider.lower().strip()
    limit = max_results or settings.search_max_results
    suffix = settings.target_domain_suffix if domain_suffix is None else domain_suffix

    try:
        results = await _provider_results(provider, query, limit)
    except Exception as exc:
        logger.error(f"Search via {provider} failed for {query!r}: {exc}")
        return []

    if not results:
        logger.info(f"Search via {provider} returned no results for {query!r}")
        return []

    urls = filter_by_domain_suffix([r.url for r in results], suffix)
    logger.info(
        f"Search via {provider}: {len(urls)}/{len(results)} results on {suffix or 'any'} domains"
    )
    return urls

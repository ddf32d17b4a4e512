from __future__ import annotations

import httpx
import pytest

from tanzparty.config import settings
from tanzparty.tools import search_provider, tavily_search
from tanzparty.tools.search_provider import filter_by_domain_suffix
from tanzparty.tools.web_utils import matches_domain_suffix


class _FakeResponse:
    def __init__(self, payload: dict, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict:
        return self._payload


GOOGLE_ITEMS = {
    "items": [
        {"title": "A", "link": "https://a.de/x", "snippet": "Salsa"},
        {"title": "B", "link": "https://b.com/y", "snippet": "Salsa"},
        {"title": "C", "link": "https://sub.tanzen.de/z", "snippet": "Salsa"},
        {"title": "D", "link": "https://evil.de.com/w", "snippet": "Salsa"},
        {"title": "E", "link": "https://c.DE/v", "snippet": "Salsa"},
    ]
}


def _configure_google(monkeypatch):
    monkeypatch.setattr(settings, "search_provider", "google")
    monkeypatch.setattr(settings, "google_api_key", "test-key")
    monkeypatch.setattr(settings, "google_cx", "test-cx")
    monkeypatch.setattr(settings, "target_domain_suffix", ".de")


@pytest.mark.asyncio
async def test_google_results_are_filtered_to_german_domains(monkeypatch):
    _configure_google(monkeypatch)
    captured: list[dict] = []

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured.append({"url": url, **kwargs})
        return _FakeResponse(GOOGLE_ITEMS)

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    urls = await search_provider.search("Salsa Veranstaltung Dienstag Berlin site:.de")

    assert urls == ["https://a.de/x", "https://sub.tanzen.de/z", "https://c.DE/v"]
    params = captured[0]["params"]
    assert params["q"] == "Salsa Veranstaltung Dienstag Berlin site:.de"
    assert params["key"] == "test-key"
    assert params["cx"] == "test-cx"


@pytest.mark.asyncio
async def test_search_returns_empty_list_on_transport_error(monkeypatch):
    _configure_google(monkeypatch)

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    assert await search_provider.search("query") == []


@pytest.mark.asyncio
async def test_search_returns_empty_list_without_results(monkeypatch):
    _configure_google(monkeypatch)

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse({"searchInformation": {"totalResults": "0"}})

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    assert await search_provider.search("query") == []


@pytest.mark.asyncio
async def test_search_returns_empty_list_when_google_unconfigured(monkeypatch):
    _configure_google(monkeypatch)
    monkeypatch.setattr(settings, "google_cx", "")

    assert await search_provider.search("query") == []


@pytest.mark.asyncio
async def test_search_returns_empty_list_for_unsupported_provider(monkeypatch):
    monkeypatch.setattr(settings, "search_provider", "unknown-provider")

    assert await search_provider.search("query") == []


@pytest.mark.asyncio
async def test_brave_provider_reads_web_results(monkeypatch):
    monkeypatch.setattr(settings, "search_provider", "brave")
    monkeypatch.setattr(settings, "brave_api_key", "brave-key")
    captured: list[dict] = []

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured.append(kwargs)
        return _FakeResponse(
            {"web": {"results": [{"url": "https://b.de/1"}, {"url": "https://b.org/2"}]}}
        )

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    assert await search_provider.search("query", domain_suffix=".de") == ["https://b.de/1"]
    assert captured[0]["headers"]["X-Subscription-Token"] == "brave-key"


@pytest.mark.asyncio
async def test_tavily_provider_uses_async_client(monkeypatch):
    monkeypatch.setattr(settings, "search_provider", "tavily")
    monkeypatch.setattr(settings, "tavily_api_key", "tvly-key")
    calls: list[dict] = []

    class FakeTavily:
        def __init__(self, api_key: str):
            assert api_key == "tvly-key"

        async def search(self, **kwargs):
            calls.append(kwargs)
            return {"results": [{"url": "https://t.de/a", "title": "T", "content": "c", "score": 0.9}]}

    monkeypatch.setattr(tavily_search, "AsyncTavilyClient", FakeTavily)

    assert await search_provider.search("query", max_results=3, domain_suffix=".de") == ["https://t.de/a"]
    assert calls[0]["max_results"] == 3


def test_filter_by_domain_suffix_keeps_order_and_duplicates():
    urls = ["https://x.de/1", "ftp://y.de/2", "not a url", "https://x.de/1", "https://z.at/3"]
    assert filter_by_domain_suffix(urls, ".de") == ["https://x.de/1", "https://x.de/1"]


def test_matches_domain_suffix_accepts_suffix_without_dot():
    assert matches_domain_suffix("https://tanzen.de/", "de")
    assert not matches_domain_suffix("https://tanzende.com/", "de")
    assert matches_domain_suffix("https://tanzen.com/", "")

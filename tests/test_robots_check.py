from __future__ import annotations

import httpx
import pytest

from tanzparty.tools.robots_check import RobotsChecker, robots_url_for

BOT = "TanzpartyBot/1.0 (+https://deineseite.de/bot-info)"


class _FakeResponse:
    def __init__(self, status_code: int = 200, text: str = ""):
        self.status_code = status_code
        self.text = text


def _serve(monkeypatch, response: _FakeResponse | Exception) -> list[dict]:
    requests: list[dict] = []

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        requests.append({"url": url, **kwargs})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)
    return requests


def test_robots_url_for_uses_origin():
    assert robots_url_for("https://a.de/events/salsa?page=2") == "https://a.de/robots.txt"
    assert robots_url_for("http://a.de:8080/x") == "http://a.de:8080/robots.txt"
    with pytest.raises(ValueError):
        robots_url_for("mailto:info@a.de")


@pytest.mark.asyncio
async def test_allows_path_not_covered_by_rules(monkeypatch):
    requests = _serve(monkeypatch, _FakeResponse(200, "User-agent: *\nDisallow: /private\n"))
    checker = RobotsChecker(user_agent=BOT)

    assert await checker.is_allowed("https://a.de/events") is True
    assert await checker.is_allowed("https://a.de/private/list") is False
    assert requests[0]["url"] == "https://a.de/robots.txt"
    assert requests[0]["headers"]["User-Agent"] == BOT


@pytest.mark.asyncio
async def test_rules_for_our_agent_apply(monkeypatch):
    _serve(
        monkeypatch,
        _FakeResponse(200, "User-agent: TanzpartyBot\nDisallow: /\n\nUser-agent: *\nAllow: /\n"),
    )
    assert await RobotsChecker(user_agent=BOT).is_allowed("https://a.de/events") is False


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 410, 429])
async def test_missing_or_throttled_robots_file_denies(monkeypatch, status):
    _serve(monkeypatch, _FakeResponse(status))
    assert await RobotsChecker(user_agent=BOT).is_allowed("https://a.de/events") is False


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [301, 401, 403, 500, 503])
async def test_restricted_or_broken_robots_file_denies(monkeypatch, status):
    _serve(monkeypatch, _FakeResponse(status))
    assert await RobotsChecker(user_agent=BOT).is_allowed("https://a.de/events") is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("dns failure"), httpx.ReadTimeout("timed out")],
)
async def test_network_failure_denies(monkeypatch, error):
    _serve(monkeypatch, error)
    assert await RobotsChecker(user_agent=BOT).is_allowed("https://a.de/events") is False


@pytest.mark.asyncio
async def test_non_http_url_denies_without_request(monkeypatch):
    requests = _serve(monkeypatch, _FakeResponse(200, ""))
    assert await RobotsChecker(user_agent=BOT).is_allowed("ftp://a.de/file") is False
    assert requests == []

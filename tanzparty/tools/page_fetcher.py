from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from tanzparty.tools.content_filter import is_relevant_event_text

NON_CONTENT_TAGS = ("script", "style", "noscript", "template")
TEXTUAL_CONTENT_TYPES = ("text/html", "text/plain", "application/xhtml+xml")

Sleeper = Callable[[float], Awaitable[None]]


def clean_html(html: str) -> str:
    """Drop script/style content and markup, collapse whitespace."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NON_CONTENT_TAGS):
        tag.decompose()
    text = soup.get_text(" ")
    text = text.replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


class PageFetcher:
    """Polite single-page fetcher with a topical relevance gate."""

    def __init__(
        self,
        *,
        user_agent: str,
        delay_s: float = 2.0,
        timeout_s: float = 10.0,
        sleep: Sleeper | None = None,
    ):
        self.user_agent = user_agent
        self.delay_s = max(float(delay_s), 0.0)
        self.timeout_s = max(float(timeout_s), 1.0)
        self._sleep = sleep or asyncio.sleep

    async def fetch(self, url: str) -> str | None:
        """Return cleaned page text, or None when unreachable or off-topic."""
        html = await self._download(url)
        if html is None:
            return None

        text = clean_html(html)
        if not is_relevant_event_text(text):
            logger.info(f"Content filter rejected {url} ({len(text)} chars)")
            return None
        return text

    async def _download(self, url: str) -> str | None:
        if self.delay_s:
            await self._sleep(self.delay_s)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    url,
                    headers={"User-Agent": self.user_agent},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(f"Page fetch failed for {url}: {exc}")
            return None

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not any(kind in content_type for kind in TEXTUAL_CONTENT_TYPES):
            logger.info(f"Skipping non-HTML content at {url}: {content_type}")
            return None
        return response.text

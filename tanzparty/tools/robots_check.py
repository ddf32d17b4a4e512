from __future__ import annotations

from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import httpx
from loguru import logger


def robots_url_for(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Not an http(s) URL: {url}")
    return f"{parsed.scheme}://{parsed.netloc}/robots.txt"


def parse_robots(robots_txt: str) -> RobotFileParser:
    parser = RobotFileParser()
    parser.parse(robots_txt.splitlines())
    return parser


class RobotsChecker:
    """robots.txt gate. Any failure to obtain or read the policy denies the URL."""

    def __init__(self, *, user_agent: str, timeout_s: float = 10.0):
        self.user_agent = user_agent
        self.timeout_s = max(float(timeout_s), 1.0)

    async def is_allowed(self, url: str) -> bool:
        try:
            robots_url = robots_url_for(url)
        except ValueError as exc:
            logger.warning(f"robots.txt check skipped, denying: {exc}")
            return False

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    robots_url,
                    headers={"User-Agent": self.user_agent},
                )
        except httpx.HTTPError as exc:
            logger.warning(f"robots.txt unreachable at {robots_url}, denying: {exc}")
            return False

        status = response.status_code
        if not 200 <= status < 300:
            logger.warning(f"robots.txt at {robots_url} returned {status}, denying")
            return False

        try:
            parser = parse_robots(response.text)
            allowed = parser.can_fetch(self.user_agent, url)
        except Exception as exc:
            logger.warning(f"robots.txt at {robots_url} could not be parsed, denying: {exc}")
            return False

        logger.debug(f"robots.txt for {url}: {'allowed' if allowed else 'disallowed'}")
        return allowed

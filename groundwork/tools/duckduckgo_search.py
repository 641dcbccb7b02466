from __future__ import annotations

from urllib.parse import parse_qs, quote, urljoin, urlparse

from bs4 import BeautifulSoup

from groundwork.models.sources import Deadline, Provider, RawResult
from groundwork.services.logger import get_logger
from groundwork.tools.resilient_fetch import ResilientFetcher

DDG_HTML_URL = "https://html.duckduckgo.com/html/?q={query}"


def decode_redirect(href: str) -> str | None:
    """Recover the destination from the engine's ``uddg`` redirect wrapper."""
    absolute = urljoin("https://duckduckgo.com", (href or "").strip())
    values = parse_qs(urlparse(absolute).query).get("uddg")
    if values and values[0]:
        return values[0]
    return None


def parse_results(html: str) -> list[RawResult]:
    soup = BeautifulSoup(html, "html.parser")
    results: list[RawResult] = []
    for container in soup.select(".web-result"):
        title_link = container.select_one("a.result__a")
        snippet_el = container.select_one(".result__snippet")
        if title_link is None or snippet_el is None:
            continue
        link = decode_redirect(title_link.get("href", ""))
        if not link:
            continue
        results.append(
            RawResult(
                title=title_link.get_text(" ", strip=True),
                link=link,
                snippet=snippet_el.get_text(" ", strip=True),
                origin=Provider.WEB_SEARCH,
            )
        )
    return results


class WebSearchAdapter:
    """Scrapes the no-JS HTML result page of the web search engine."""

    provider = Provider.WEB_SEARCH

    def __init__(self, fetcher: ResilientFetcher, log=None):
        self.fetcher = fetcher
        self.log = log or get_logger("search.web")

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        fetched = await self.fetcher.fetch(DDG_HTML_URL.format(query=quote(query, safe="")), deadline=deadline)
        return parse_results(fetched.body)[:limit]

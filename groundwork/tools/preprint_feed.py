from __future__ import annotations

import feedparser

from groundwork.models.sources import Deadline, Provider, RawResult
from groundwork.services.logger import get_logger
from groundwork.tools.resilient_fetch import ResilientFetcher
from groundwork.tools.web_utils import strip_tags

FEED_URL = "https://connect.biorxiv.org/biorxiv_xml.php?subject=all"
MAX_FEED_ITEMS = 50
SNIPPET_CHARS = 300


def parse_feed(body: str, *, limit: int = MAX_FEED_ITEMS) -> list[RawResult]:
    feed = feedparser.parse(body)
    results: list[RawResult] = []
    for entry in feed.entries[: max(min(limit, MAX_FEED_ITEMS), 0)]:
        link = strip_tags(entry.get("link", ""))
        if not link:
            continue
        description = strip_tags(entry.get("description") or entry.get("summary") or "")
        results.append(
            RawResult(
                title=strip_tags(entry.get("title", "")),
                link=link,
                snippet=description[:SNIPPET_CHARS] + "...",
                origin=Provider.PREPRINT_FEED,
            )
        )
    return results


class PreprintFeedAdapter:
    """Live preprint feed; returns every item unfiltered for the AI relevance filter."""

    provider = Provider.PREPRINT_FEED

    def __init__(self, fetcher: ResilientFetcher, *, feed_url: str = FEED_URL, log=None):
        self.fetcher = fetcher
        self.feed_url = feed_url
        self.log = log or get_logger("search.preprint_feed")

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        self.log.info(f"Monitoring live feed from {self.feed_url}")
        fetched = await self.fetcher.fetch(self.feed_url, deadline=deadline)
        results = parse_feed(fetched.body, limit=limit)
        self.log.info(f"Fetched {len(results)} raw items from the live feed; relevance is decided downstream.")
        return results

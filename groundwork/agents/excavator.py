from __future__ import annotations

import asyncio
from typing import Iterable
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from groundwork.config import settings
from groundwork.models.sources import ClassifiedResult, Deadline, RawResult, dedupe_by_link
from groundwork.services.logger import get_logger
from groundwork.tools.domain_classifier import is_primary_domain
from groundwork.tools.resilient_fetch import ResilientFetcher


def extract_primary_links(
    html: str,
    base_url: str,
    page: ClassifiedResult,
    *,
    max_links: int,
) -> list[RawResult]:
    """Anchors on ``html`` that resolve to a primary-domain http(s) URL."""
    soup = BeautifulSoup(html, "html.parser")
    found: list[RawResult] = []
    seen: set[str] = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith(("#", "mailto:", "javascript:")):
            continue
        absolute = urljoin(base_url, href)
        if urlparse(absolute).scheme not in ("http", "https"):
            continue
        if absolute in seen or not is_primary_domain(absolute):
            continue
        seen.add(absolute)
        found.append(
            RawResult(
                title=anchor.get_text(" ", strip=True) or absolute,
                link=absolute,
                snippet=f"Excavated from: {page.title}",
                origin=page.origin,
            )
        )
        if len(found) >= max_links:
            break
    return found


class Excavator:
    """Crawls secondary pages once and promotes the primary links they cite."""

    def __init__(self, fetcher: ResilientFetcher, log=None, *, max_links_per_page: int | None = None):
        self.fetcher = fetcher
        self.log = log or get_logger("excavator")
        self.max_links_per_page = (
            max_links_per_page
            if max_links_per_page is not None
            else settings.excavation_max_links_per_page
        )

    async def _excavate_page(self, page: ClassifiedResult, deadline: Deadline) -> list[RawResult]:
        try:
            fetched = await self.fetcher.fetch(page.link, deadline=deadline)
        except Exception as exc:
            self.log.warning(f"Could not excavate {page.link}: {exc}")
            return []
        links = extract_primary_links(
            fetched.body,
            fetched.final_url,
            page,
            max_links=self.max_links_per_page,
        )
        if links:
            self.log.info(f"Found {len(links)} primary links in {page.link}")
        return links

    async def excavate(
        self,
        secondary: Iterable[ClassifiedResult],
        *,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        pages = list(secondary)
        if not pages:
            return []
        deadline = deadline or Deadline.none()
        self.log.info(f"Excavating {len(pages)} secondary sources for primary links...")
        per_page = await asyncio.gather(*(self._excavate_page(page, deadline) for page in pages))
        found = dedupe_by_link(link for links in per_page for link in links)
        self.log.info(f"Excavation complete. Promoted {len(found)} primary links.")
        return found

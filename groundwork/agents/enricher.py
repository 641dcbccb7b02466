from __future__ import annotations

import asyncio
import re
from typing import Iterable

from groundwork.agents.grounded_search import GROUNDED_SNIPPET_PREFIX
from groundwork.config import settings
from groundwork.models.sources import (
    ClassifiedResult,
    Deadline,
    EnrichedResult,
    EnrichmentOutcome,
    dedupe_by_link,
)
from groundwork.services.logger import get_logger
from groundwork.tools.content_extractor import extract_document_metadata, find_doi
from groundwork.tools.pubmed_search import PubMedAdapter, pubmed_snippet
from groundwork.tools.resilient_fetch import ResilientFetcher
from groundwork.tools.web_utils import normalize_host

DOI_CONFIRMED_MARKER = "[DOI Confirmed]"
FETCH_FAILED_PREFIX = "[Content fetch failed]"
PREPRINT_DETAILS_URL = "https://api.biorxiv.org/details/{server}/{doi}"
PREPRINT_SERVERS = ("biorxiv", "medrxiv")
GENERIC_SNIPPET_PREFIXES = ("Source from", GROUNDED_SNIPPET_PREFIX, "Excavated from:")

_PMID_RE = re.compile(r"pubmed\.ncbi\.nlm\.nih\.gov/(\d+)")


def strip_doi_marker(text: str) -> str:
    return (text or "").replace(DOI_CONFIRMED_MARKER, "").strip()


def needs_enrichment(candidate: ClassifiedResult, min_chars: int) -> bool:
    """Primary sources whose snippet is too thin or only a placeholder."""
    if not candidate.is_primary_domain:
        return False
    snippet = candidate.snippet or ""
    return len(snippet) < min_chars or snippet.startswith(GENERIC_SNIPPET_PREFIXES)


def preprint_server(url: str) -> str | None:
    host = normalize_host(url)
    for server in PREPRINT_SERVERS:
        if host == f"{server}.org" or host.endswith(f".{server}.org"):
            return server
    return None


def _enriched(
    candidate: ClassifiedResult,
    *,
    outcome: EnrichmentOutcome,
    title: str | None = None,
    link: str | None = None,
    snippet: str | None = None,
    abstract_text: str = "",
    doi_confirmed: bool = False,
) -> EnrichedResult:
    return EnrichedResult(
        title=title or candidate.title,
        link=link or candidate.link,
        snippet=snippet if snippet is not None else candidate.snippet,
        origin=candidate.origin,
        is_primary_domain=candidate.is_primary_domain,
        abstract_text=abstract_text,
        doi_confirmed=doi_confirmed,
        outcome=outcome,
    )


class Enricher:
    """Replaces thin snippets with the title and abstract of the document itself.

    Strategies run in a fixed order and the first success wins: the preprint
    server's structured API, the literature index summary, then a page scrape.
    A source whose every fetch fails keeps its title and is marked as such.
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        pubmed: PubMedAdapter | None = None,
        log=None,
        *,
        min_snippet_chars: int | None = None,
    ):
        self.fetcher = fetcher
        self.pubmed = pubmed or PubMedAdapter(fetcher)
        self.log = log or get_logger("enricher")
        self.min_snippet_chars = (
            min_snippet_chars if min_snippet_chars is not None else settings.enrichment_min_snippet_chars
        )

    async def _from_preprint_api(
        self, candidate: ClassifiedResult, deadline: Deadline
    ) -> EnrichedResult | None:
        server = preprint_server(candidate.link)
        doi = find_doi(candidate.link) if server else None
        if not server or not doi:
            return None

        self.log.info(f"Found {server} DOI {doi}. Querying structured API...")
        response = await self.fetcher.get_direct(
            PREPRINT_DETAILS_URL.format(server=server, doi=doi),
            deadline=deadline,
        )
        payload = response.json()
        collection = payload.get("collection") if isinstance(payload, dict) else None
        if not collection or not isinstance(collection[0], dict):
            raise LookupError(f"{server} API returned no record for DOI {doi}")

        record = collection[0]
        abstract = " ".join(str(record.get("abstract") or "").split())
        confirmed_doi = str(record.get("doi") or doi)
        return _enriched(
            candidate,
            outcome=EnrichmentOutcome.API_HIT,
            title=str(record.get("title") or "").strip() or None,
            link=f"https://www.{server}.org/content/{confirmed_doi}",
            snippet=f"{DOI_CONFIRMED_MARKER} {abstract}" if abstract else DOI_CONFIRMED_MARKER,
            abstract_text=abstract,
            doi_confirmed=True,
        )

    async def _from_pubmed(self, candidate: ClassifiedResult, deadline: Deadline) -> EnrichedResult | None:
        match = _PMID_RE.search(candidate.link)
        if not match:
            return None
        pmid = match.group(1)
        self.log.info(f"Found PMID {pmid}. Fetching details...")
        summaries = await self.pubmed.fetch_summaries([pmid], deadline=deadline)
        article = summaries.get(pmid)
        if not article:
            raise LookupError(f"No summary returned for PMID {pmid}")
        title = str(article.get("title") or "").strip()
        self.log.info(f"Successfully enriched PMID {pmid} with title: {title!r}")
        return _enriched(
            candidate,
            outcome=EnrichmentOutcome.API_HIT,
            title=title or None,
            snippet=f"{pubmed_snippet(article)}.",
        )

    async def _from_page(self, candidate: ClassifiedResult, deadline: Deadline) -> EnrichedResult:
        fetched = await self.fetcher.fetch(candidate.link, deadline=deadline)
        metadata = extract_document_metadata(fetched.body, fetched.final_url)
        if not metadata.abstract and not metadata.title:
            self.log.info(f"Nothing recoverable on {candidate.link}; keeping search snippet.")
            return _enriched(candidate, outcome=EnrichmentOutcome.SKIPPED)

        confirmed = metadata.doi is not None
        body = metadata.abstract or candidate.snippet
        snippet = f"{DOI_CONFIRMED_MARKER} {body}" if confirmed else body
        if fetched.final_url != candidate.link:
            self.log.debug(f"Canonical link for {candidate.link} is {fetched.final_url}")
        return _enriched(
            candidate,
            outcome=EnrichmentOutcome.SCRAPE_HIT,
            title=metadata.title or None,
            link=fetched.final_url,
            snippet=snippet,
            abstract_text=metadata.abstract,
            doi_confirmed=confirmed,
        )

    async def enrich_one(
        self, candidate: ClassifiedResult, *, deadline: Deadline | None = None
    ) -> EnrichedResult:
        if not needs_enrichment(candidate, self.min_snippet_chars):
            return _enriched(candidate, outcome=EnrichmentOutcome.SKIPPED)

        deadline = deadline or Deadline.none()
        for strategy in (self._from_preprint_api, self._from_pubmed):
            try:
                result = await strategy(candidate, deadline)
            except Exception as exc:
                self.log.warning(f"{strategy.__name__.strip('_')} failed for {candidate.link}: {exc}")
                continue
            if result is not None:
                return result

        try:
            return await self._from_page(candidate, deadline)
        except Exception as exc:
            self.log.warning(f"Failed to enrich {candidate.link}: {exc}")
            return _enriched(
                candidate,
                outcome=EnrichmentOutcome.FETCH_FAILED,
                snippet=f"{FETCH_FAILED_PREFIX} {candidate.snippet}".strip(),
            )

    async def enrich(
        self,
        candidates: Iterable[ClassifiedResult],
        *,
        deadline: Deadline | None = None,
    ) -> list[EnrichedResult]:
        pending = list(candidates)
        self.log.info(f"Starting enrichment process for {len(pending)} results.")
        enriched = await asyncio.gather(*(self.enrich_one(c, deadline=deadline) for c in pending))
        counts: dict[str, int] = {}
        for item in enriched:
            counts[item.outcome.value] = counts.get(item.outcome.value, 0) + 1
        self.log.info(f"Enrichment process complete: {counts}")
        # Rewritten links can converge on one canonical document.
        unique = dedupe_by_link(enriched)
        if len(unique) < len(enriched):
            self.log.info(f"Collapsed {len(enriched) - len(unique)} results sharing a canonical link.")
        return unique

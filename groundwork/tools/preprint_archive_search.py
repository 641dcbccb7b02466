from __future__ import annotations

from typing import Any

from groundwork.models.sources import Deadline, Provider, RawResult
from groundwork.services.logger import get_logger
from groundwork.tools.pubmed_search import esearch_ids, esummary, format_authors
from groundwork.tools.resilient_fetch import ResilientFetcher

PREPRINT_JOURNAL_TAG = "biorxiv[journal]"


def build_archive_query(query: str) -> str:
    """Exact phrase OR'd with the individual tokens, restricted to the preprint tag."""
    tokens = [term for term in query.split() if len(term) > 2]
    expanded = " OR ".join(tokens) or query
    return f'(("{query}") OR ({expanded})) AND {PREPRINT_JOURNAL_TAG}'


def _pmc_id(article: dict[str, Any]) -> str | None:
    for article_id in article.get("articleids") or []:
        if isinstance(article_id, dict) and article_id.get("idtype") == "pmc":
            value = str(article_id.get("value") or "").strip()
            if value:
                return value
    return None


class PreprintArchiveAdapter:
    """Preprints mirrored in PubMed Central, found through the same E-utilities."""

    provider = Provider.PREPRINT_ARCHIVE

    def __init__(self, fetcher: ResilientFetcher, log=None):
        self.fetcher = fetcher
        self.log = log or get_logger("search.preprint_archive")

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        term = build_archive_query(query)
        self.log.info(f"Querying PMC for preprints with query: {term}")
        ids = await esearch_ids(self.fetcher, db="pmc", term=term, retmax=limit, deadline=deadline)
        if not ids:
            self.log.info("No preprints found in PMC for this query.")
            return []

        summaries = await esummary(self.fetcher, db="pmc", ids=ids, deadline=deadline)
        results: list[RawResult] = []
        for uid, article in summaries.items():
            pmc_id = _pmc_id(article)
            link = (
                f"https://pmc.ncbi.nlm.nih.gov/articles/{pmc_id}/"
                if pmc_id
                else f"https://pubmed.ncbi.nlm.nih.gov/{uid}/"
            )
            results.append(
                RawResult(
                    title=str(article.get("title") or ""),
                    link=link,
                    snippet=f"Authors: {format_authors(article)}. PubDate: {article.get('pubdate') or 'N/A'}.",
                    origin=self.provider,
                )
            )
        self.log.info(f"Found {len(results)} preprints in PMC.")
        return results[:limit]

from __future__ import annotations

from typing import Any

from groundwork.models.sources import Deadline, Provider, RawResult
from groundwork.services.logger import get_logger
from groundwork.tools.resilient_fetch import ResilientFetcher

EUTILS_BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
ESEARCH_URL = f"{EUTILS_BASE_URL}/esearch.fcgi"
ESUMMARY_URL = f"{EUTILS_BASE_URL}/esummary.fcgi"


def format_authors(article: dict[str, Any]) -> str:
    authors = article.get("authors") or []
    names = [str(a.get("name")) for a in authors if isinstance(a, dict) and a.get("name")]
    return ", ".join(names) or "N/A"


def pubmed_snippet(article: dict[str, Any]) -> str:
    return (
        f"Authors: {format_authors(article)}. "
        f"Journal: {article.get('source') or 'N/A'}. "
        f"PubDate: {article.get('pubdate') or 'N/A'}"
    )


async def esearch_ids(
    fetcher: ResilientFetcher,
    *,
    db: str,
    term: str,
    retmax: int,
    deadline: Deadline | None = None,
) -> list[str]:
    response = await fetcher.get_direct(
        ESEARCH_URL,
        params={
            "db": db,
            "term": term,
            "retmode": "json",
            "sort": "relevance",
            "retmax": str(retmax),
        },
        deadline=deadline,
    )
    payload = response.json()
    idlist = (payload.get("esearchresult") or {}).get("idlist") or [] if isinstance(payload, dict) else []
    return [str(x) for x in idlist if str(x).strip()]


async def esummary(
    fetcher: ResilientFetcher,
    *,
    db: str,
    ids: list[str],
    deadline: Deadline | None = None,
) -> dict[str, dict[str, Any]]:
    """Batch summary lookup keyed by id; missing or malformed records are dropped."""
    if not ids:
        return {}
    response = await fetcher.get_direct(
        ESUMMARY_URL,
        params={"db": db, "id": ",".join(ids), "retmode": "json"},
        deadline=deadline,
    )
    payload = response.json()
    result = payload.get("result") if isinstance(payload, dict) else None
    if not isinstance(result, dict):
        return {}
    return {uid: result[uid] for uid in ids if isinstance(result.get(uid), dict)}


class PubMedAdapter:
    """Two-step literature index search: esearch for ids, then batch esummary."""

    provider = Provider.PUBMED

    def __init__(self, fetcher: ResilientFetcher, log=None):
        self.fetcher = fetcher
        self.log = log or get_logger("search.pubmed")

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        term = f"{query}[Title/Abstract]"
        self.log.info(f"Using specific query: {term!r}")
        ids = await esearch_ids(self.fetcher, db="pubmed", term=term, retmax=limit, deadline=deadline)
        if not ids:
            return []

        summaries = await self.fetch_summaries(ids, deadline=deadline)
        results = [
            RawResult(
                title=str(article.get("title") or ""),
                link=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
                snippet=pubmed_snippet(article),
                origin=self.provider,
            )
            for pmid, article in summaries.items()
        ]
        return results[:limit]

    async def fetch_summaries(
        self,
        ids: list[str],
        *,
        deadline: Deadline | None = None,
    ) -> dict[str, dict[str, Any]]:
        return await esummary(self.fetcher, db="pubmed", ids=ids, deadline=deadline)

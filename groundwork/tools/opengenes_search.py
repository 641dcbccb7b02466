from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

from groundwork.models.sources import Deadline, Provider, RawResult
from groundwork.services.logger import get_logger
from groundwork.tools.resilient_fetch import ResilientFetcher

OPEN_GENES_SEARCH_URL = "https://open-genes.com/api/gene/search?bySuggestions={query}&pageSize=10"


def _first(items: Any) -> dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def _lifespan_change(research: dict[str, Any]) -> str:
    low = research.get("lifespanMinChangePercent")
    high = research.get("lifespanMaxChangePercent")
    mean = research.get("lifespanMeanChangePercent")
    if low is not None and high is not None:
        return f"{high}%" if low == high else f"{low}% to {high}%"
    if high is not None:
        return f"{high}%"
    if mean is not None:
        return f"~{mean}%"
    return "N/A"


def gene_record_to_result(record: dict[str, Any]) -> RawResult:
    """Flatten one nested gene record into a readable snippet."""
    research = _first((record.get("researches") or {}).get("increaseLifespan"))
    effect = research.get("interventionResultForLifespan") or "unclear"
    change = _lifespan_change(research) if research else "N/A"
    hallmark = _first(record.get("agingMechanisms")).get("name") or "N/A"
    experiment = _first((research.get("interventions") or {}).get("experiment"))
    intervention = experiment.get("interventionMethod") or "N/A"
    organism = research.get("modelOrganism") or "N/A"

    symbol = record.get("symbol") or ""
    return RawResult(
        title=f"{symbol} ({record.get('name') or 'N/A'})",
        link=f"https://open-genes.com/api/gene/{symbol}",
        snippet=(
            f"Organism: {organism}. Effect: {effect} ({change}). "
            f"Hallmark: {hallmark}. Intervention: {intervention}."
        ),
        origin=Provider.GENE_DATABASE,
    )


class GeneDatabaseAdapter:
    """Curated gene/longevity database searched by suggestion."""

    provider = Provider.GENE_DATABASE

    def __init__(self, fetcher: ResilientFetcher, log=None):
        self.fetcher = fetcher
        self.log = log or get_logger("search.gene_database")

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        url = OPEN_GENES_SEARCH_URL.format(query=quote(query, safe=""))
        self.log.info(f"Querying live API at: {url}")
        fetched = await self.fetcher.fetch(url, deadline=deadline)
        payload = json.loads(fetched.body)
        items = payload.get("items") if isinstance(payload, dict) else payload
        records = [item for item in items or [] if isinstance(item, dict) and item.get("symbol")]
        results = [gene_record_to_result(record) for record in records[:limit]]
        self.log.info(f"Found {len(results)} matches from API.")
        return results

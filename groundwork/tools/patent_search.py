from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

from groundwork.models.sources import Deadline, Provider, RawResult
from groundwork.services.logger import get_logger
from groundwork.tools.resilient_fetch import ResilientFetcher
from groundwork.tools.web_utils import strip_tags

PATENTS_QUERY_URL = "https://patents.google.com/xhr/query?url=q%3D{query}"


def parse_patent_payload(raw_text: str) -> dict[str, Any]:
    """Parse a body that carries a non-JSON preamble before the first ``{``."""
    first_brace = raw_text.find("{")
    if first_brace == -1:
        raise ValueError(f"No JSON object found in response. Body starts with: {raw_text[:150]}")
    data = json.loads(raw_text[first_brace:])
    if not isinstance(data, dict):
        raise ValueError("Patent response is not a JSON object")
    return data


def _people(patent: dict[str, Any], field: str) -> str:
    normalized = patent.get(f"{field}_normalized")
    if isinstance(normalized, list) and normalized:
        return strip_tags(", ".join(str(name) for name in normalized))
    raw = patent.get(field)
    if isinstance(raw, list) and raw:
        return strip_tags(", ".join(str(name) for name in raw))
    if isinstance(raw, str) and raw.strip():
        return strip_tags(raw)
    return "N/A"


class PatentAdapter:
    provider = Provider.PATENTS

    def __init__(self, fetcher: ResilientFetcher, log=None):
        self.fetcher = fetcher
        self.log = log or get_logger("search.patents")

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        url = PATENTS_QUERY_URL.format(query=quote(query, safe=""))
        fetched = await self.fetcher.fetch(url, deadline=deadline)
        data = parse_patent_payload(fetched.body)

        clusters = (data.get("results") or {}).get("cluster") or []
        items = (clusters[0] or {}).get("result") or [] if clusters else []

        results: list[RawResult] = []
        for item in items:
            patent = item.get("patent") if isinstance(item, dict) else None
            if not isinstance(patent, dict) or not patent.get("publication_number"):
                continue
            results.append(
                RawResult(
                    title=strip_tags(patent.get("title") or "No Title"),
                    link=f"https://patents.google.com/patent/{patent['publication_number']}/en",
                    snippet=(
                        f"Inventor: {_people(patent, 'inventor')}. "
                        f"Assignee: {_people(patent, 'assignee')}. "
                        f"Publication Date: {patent.get('publication_date') or 'N/A'}"
                    ),
                    origin=self.provider,
                )
            )
            if len(results) >= limit:
                break
        return results

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from groundwork.agents.base import BaseAgent
from groundwork.config import settings
from groundwork.models.sources import ClassifiedResult, Deadline
from groundwork.services.prompt_store import render_prompt
from groundwork.services.structured_reply import decode_structured_reply


def format_articles(batch: Sequence[ClassifiedResult]) -> str:
    return "\n\n".join(
        f"{idx}. Title: {item.title}\n   URL: {item.link}\n   Snippet: {item.snippet}"
        for idx, item in enumerate(batch, start=1)
    )


def select_from_reply(payload: Any, batch: Sequence[ClassifiedResult]) -> list[ClassifiedResult]:
    """Map a ``relevantArticleUrls``/``relevantIndices`` reply back onto the batch."""
    if not isinstance(payload, dict):
        raise ValueError("relevance reply must be a JSON object")
    urls = payload.get("relevantArticleUrls")
    indices = payload.get("relevantIndices")
    if urls is None and indices is None:
        raise ValueError("relevance reply has neither relevantArticleUrls nor relevantIndices")

    wanted_urls = {str(u).strip() for u in urls or [] if isinstance(u, str)}
    wanted_idx: set[int] = set()
    for raw in indices or []:
        try:
            wanted_idx.add(int(raw))
        except (TypeError, ValueError):
            continue

    return [
        item
        for position, item in enumerate(batch, start=1)
        if item.link in wanted_urls or position in wanted_idx
    ]


class RelevanceFilter(BaseAgent):
    """Keeps only the live-feed items the model judges directly on-topic."""

    name = "relevance_filter"

    def __init__(
        self,
        model: str | None = None,
        llm=None,
        log=None,
        *,
        batch_size: int | None = None,
        max_selected: int | None = None,
    ):
        super().__init__(model=model, llm=llm, log=log)
        self.batch_size = max(batch_size or settings.relevance_filter_batch_size, 1)
        self.max_selected = max_selected if max_selected is not None else settings.relevance_filter_max_selected

    async def _filter_batch(
        self,
        topic: str,
        batch: Sequence[ClassifiedResult],
        deadline: Deadline | None,
    ) -> list[ClassifiedResult]:
        try:
            reply = await self.ask(
                render_prompt("relevance_filter.system_prompt", max_selected=self.max_selected),
                render_prompt(
                    "relevance_filter.user_prompt",
                    topic=topic,
                    articles=format_articles(batch),
                ),
                deadline=deadline,
            )
            return select_from_reply(decode_structured_reply(reply.text), batch)
        except Exception as exc:
            self.log.warning(f"Discarding relevance batch of {len(batch)} items: {exc}")
            return []

    async def filter(
        self,
        topic: str,
        candidates: Sequence[ClassifiedResult],
        *,
        deadline: Deadline | None = None,
    ) -> list[ClassifiedResult]:
        items = list(candidates)
        if not items or self.max_selected <= 0:
            return []
        self.log.info(f"Filtering {len(items)} feed items for relevance to {topic!r}...")
        batches = [items[i : i + self.batch_size] for i in range(0, len(items), self.batch_size)]
        settled = await asyncio.gather(*(self._filter_batch(topic, b, deadline) for b in batches))
        selected = [item for picked in settled for item in picked][: self.max_selected]
        self.log.info(f"Relevance filter kept {len(selected)} of {len(items)} feed items.")
        return selected

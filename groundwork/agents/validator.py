from __future__ import annotations

import asyncio
from typing import Any, Sequence

from groundwork.agents.base import BaseAgent
from groundwork.agents.enricher import DOI_CONFIRMED_MARKER, strip_doi_marker
from groundwork.config import settings
from groundwork.errors import ValidationFailedError
from groundwork.models.sources import Deadline, EnrichedResult, GroundingSource, SourceStatus
from groundwork.services.prompt_store import render_prompt
from groundwork.services.structured_reply import decode_structured_reply

MAX_SNIPPET_CHARS = 1500


def format_sources(batch: Sequence[EnrichedResult]) -> str:
    blocks = []
    for idx, item in enumerate(batch, start=1):
        snippet = item.snippet
        if len(snippet) > MAX_SNIPPET_CHARS:
            snippet = snippet[:MAX_SNIPPET_CHARS].rstrip() + "..."
        blocks.append(
            f"Source {idx}:\nURI: {item.link}\nTitle: {item.title}\nOrigin: {item.origin.value}\nSnippet: {snippet}"
        )
    return "\n\n".join(blocks)


def match_records(payload: Any, batch: Sequence[EnrichedResult]) -> list[dict[str, Any]]:
    """Pair every input with exactly one reply record.

    Records are matched by URI first. Records whose URI names no input (the
    model rewrote it) are then paired in order with the inputs still lacking
    one. Raises ``ValueError`` when any input is left without a record.
    """
    records = payload.get("sources") if isinstance(payload, dict) else payload
    if not isinstance(records, list):
        raise ValueError("validator reply has no 'sources' array")
    records = [r for r in records if isinstance(r, dict)]

    wanted = {item.link for item in batch}
    by_uri: dict[str, dict[str, Any]] = {}
    unmatched: list[dict[str, Any]] = []
    for record in records:
        uri = str(record.get("uri") or "").strip()
        if uri not in wanted:
            unmatched.append(record)
        else:
            by_uri.setdefault(uri, record)

    leftovers = iter(unmatched)
    matched: list[dict[str, Any]] = []
    for item in batch:
        record = by_uri.get(item.link)
        if record is None:
            record = next(leftovers, None)
        if record is None:
            raise ValueError(f"validator reply has no record for {item.link}")
        matched.append(record)
    return matched


def to_grounding_source(item: EnrichedResult, record: dict[str, Any]) -> GroundingSource:
    summary = strip_doi_marker(str(record.get("summary") or ""))
    return GroundingSource(
        uri=item.link,
        title=str(record.get("title") or "").strip() or item.title,
        status=SourceStatus.VALID,
        origin=item.origin,
        content=summary or strip_doi_marker(item.abstract_text or item.snippet),
        reliability=record.get("reliability"),
        reliability_justification=str(
            record.get("reliabilityJustification") or record.get("reliability_justification") or ""
        ),
    )


class SourceValidator(BaseAgent):
    """Summarizes and scores curated sources; one bad batch fails the request."""

    name = "validator"

    def __init__(self, model: str | None = None, llm=None, log=None, *, batch_size: int | None = None):
        super().__init__(model=model, llm=llm, log=log)
        self.batch_size = max(batch_size or settings.validation_batch_size, 1)

    async def _validate_batch(
        self,
        topic: str,
        batch: Sequence[EnrichedResult],
        deadline: Deadline | None,
    ) -> list[GroundingSource]:
        reply = await self.ask(
            render_prompt("validator.system_prompt", doi_marker=DOI_CONFIRMED_MARKER),
            render_prompt(
                "validator.user_prompt",
                topic=topic,
                count=len(batch),
                sources=format_sources(batch),
            ),
            deadline=deadline,
        )
        records = match_records(decode_structured_reply(reply.text), batch)
        return [to_grounding_source(item, record) for item, record in zip(batch, records)]

    async def validate(
        self,
        topic: str,
        enriched: Sequence[EnrichedResult],
        *,
        deadline: Deadline | None = None,
    ) -> list[GroundingSource]:
        items = list(enriched)
        if not items:
            return []
        batches = [items[i : i + self.batch_size] for i in range(0, len(items), self.batch_size)]
        self.log.info(f"Validating {len(items)} sources in {len(batches)} batch(es)...")

        settled = await asyncio.gather(
            *(self._validate_batch(topic, batch, deadline) for batch in batches),
            return_exceptions=True,
        )

        validated: list[GroundingSource] = []
        for outcome in settled:
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                self.log.error(f"Validation batch failed: {outcome!r}")
                raise ValidationFailedError(
                    f"AI validation failed; the curated sources could not be scored ({outcome})."
                ) from outcome
            validated.extend(outcome)

        self.log.info(f"Validation complete for {len(validated)} sources.")
        return validated

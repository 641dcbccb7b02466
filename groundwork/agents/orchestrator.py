from __future__ import annotations

import asyncio
import time
from typing import Iterable, Mapping

from groundwork.agents.enricher import Enricher
from groundwork.agents.excavator import Excavator
from groundwork.agents.query_enhancer import QueryEnhancer
from groundwork.agents.relevance_filter import RelevanceFilter
from groundwork.agents.validator import SourceValidator
from groundwork.config import Settings, settings as default_settings
from groundwork.errors import NoPrimarySourcesError, NoSourcesFoundError, PipelineError
from groundwork.models.events import PipelineEvent, ProgressCallback
from groundwork.models.sources import (
    ClassifiedResult,
    Deadline,
    GroundingSource,
    Provider,
    dedupe_by_link,
)
from groundwork.services import streaming
from groundwork.services.federated_search import federated_search
from groundwork.services.logger import get_logger, log_event
from groundwork.services.quality_gate import apply_quality_gate
from groundwork.tools.domain_classifier import classify
from groundwork.tools.resilient_fetch import ResilientFetcher
from groundwork.tools.search_provider import ProviderAdapter, build_adapters, resolve_limits


class GroundingPipeline:
    """Turns a research topic into a scored, bounded list of grounding sources.

    Flow (each stage is a fan-out/join; the next starts once every task settled):
      1. Optional query enhancement
      2. Federated search across the enabled providers
      3. Domain classification; live-feed items are set aside
      4. Triage: excavate secondary pages and filter feed items concurrently
      5. Enrich thin snippets from the documents themselves
      6. AI validation and summarization
      7. Quality gate

    Two checkpoints abort the run: no search results at all, and no primary
    sources after triage. A validator failure aborts it as well.
    """

    def __init__(
        self,
        config: Settings | None = None,
        *,
        fetcher: ResilientFetcher | None = None,
        llm=None,
        adapters: Mapping[Provider, ProviderAdapter] | None = None,
        model: str | None = None,
        log=None,
    ):
        self.config = config or default_settings
        self.log = log or get_logger("pipeline")
        self.fetcher = fetcher or ResilientFetcher(timeout=self.config.request_timeout_seconds)
        self.adapters = dict(adapters) if adapters is not None else build_adapters(
            self.fetcher, model=model, llm=llm
        )
        self.query_enhancer = QueryEnhancer(model=model, llm=llm)
        self.excavator = Excavator(
            self.fetcher,
            max_links_per_page=self.config.excavation_max_links_per_page,
        )
        self.relevance_filter = RelevanceFilter(
            model=model,
            llm=llm,
            batch_size=self.config.relevance_filter_batch_size,
            max_selected=self.config.relevance_filter_max_selected,
        )
        self.enricher = Enricher(
            self.fetcher,
            min_snippet_chars=self.config.enrichment_min_snippet_chars,
        )
        self.validator = SourceValidator(
            model=model,
            llm=llm,
            batch_size=self.config.validation_batch_size,
        )

    def _emit(self, progress: ProgressCallback | None, event: PipelineEvent) -> None:
        if progress is None:
            return
        try:
            progress(event)
        except Exception as exc:
            self.log.warning(f"Progress callback failed on {event.event.value}: {exc}")

    async def _triage(
        self,
        topic: str,
        secondary: list[ClassifiedResult],
        feed_items: list[ClassifiedResult],
        deadline: Deadline,
    ) -> tuple[list[ClassifiedResult], list[ClassifiedResult]]:
        excavated, relevant_feed = await asyncio.gather(
            self.excavator.excavate(secondary, deadline=deadline),
            self.relevance_filter.filter(topic, feed_items, deadline=deadline),
        )
        return classify(excavated), relevant_feed

    async def discover(
        self,
        topic: str,
        *,
        providers: Iterable[Provider | str] | None = None,
        limits: dict[Provider, int] | None = None,
        progress: ProgressCallback | None = None,
        threshold: float | None = None,
        max_sources: int | None = None,
    ) -> list[GroundingSource]:
        topic = " ".join((topic or "").split())
        if not topic:
            raise ValueError("topic must not be empty")

        started_at = time.monotonic()
        deadline = Deadline(self.config.pipeline_timeout_seconds)
        threshold = self.config.reliability_threshold if threshold is None else threshold
        max_sources = self.config.max_sources if max_sources is None else max_sources
        enabled_limits = resolve_limits(providers, limits, config=self.config)

        try:
            query = topic
            if self.config.preprocess_query:
                self._emit(progress, streaming.stage_started("query"))
                query = await self.query_enhancer.enhance(topic, deadline=deadline)
                self._emit(progress, streaming.stage_completed("query", query=query))

            stage_at = time.monotonic()
            self._emit(progress, streaming.stage_started("search", query=query))
            raw = await federated_search(
                query,
                self.adapters,
                enabled_limits,
                deadline=deadline,
                provider_timeout=self.config.provider_timeout_seconds,
                progress=progress,
            )
            self._emit(
                progress,
                streaming.stage_completed(
                    "search",
                    results_count=len(raw),
                    duration_ms=int((time.monotonic() - stage_at) * 1000),
                ),
            )
            if not raw:
                raise NoSourcesFoundError(
                    "No sources found from any provider. Try refining your topic or enabling more providers."
                )

            classified = classify(raw)
            feed_items = [r for r in classified if r.origin == Provider.PREPRINT_FEED]
            primary = [r for r in classified if r.is_primary_domain and r.origin != Provider.PREPRINT_FEED]
            secondary = [r for r in classified if not r.is_primary_domain and r.origin != Provider.PREPRINT_FEED]
            message = (
                f"Classified {len(classified)} results: {len(primary)} primary, "
                f"{len(secondary)} secondary, {len(feed_items)} feed items."
            )
            self.log.info(message)
            self._emit(
                progress,
                streaming.progress(
                    message,
                    primary_count=len(primary),
                    secondary_count=len(secondary),
                    feed_count=len(feed_items),
                ),
            )

            stage_at = time.monotonic()
            self._emit(
                progress,
                streaming.stage_started("triage", secondary_count=len(secondary), feed_count=len(feed_items)),
            )
            excavated, relevant_feed = await self._triage(topic, secondary, feed_items, deadline)
            pool = dedupe_by_link([*primary, *excavated, *relevant_feed])
            self._emit(
                progress,
                streaming.stage_completed(
                    "triage",
                    excavated_count=len(excavated),
                    feed_selected=len(relevant_feed),
                    candidates_count=len(pool),
                    duration_ms=int((time.monotonic() - stage_at) * 1000),
                ),
            )
            if not pool:
                raise NoPrimarySourcesError(
                    "No primary sources could be identified after excavation and filtering."
                )

            stage_at = time.monotonic()
            self._emit(progress, streaming.stage_started("enrich", candidates_count=len(pool)))
            enriched = await self.enricher.enrich(pool, deadline=deadline)
            self._emit(
                progress,
                streaming.stage_completed(
                    "enrich",
                    candidates_count=len(enriched),
                    duration_ms=int((time.monotonic() - stage_at) * 1000),
                ),
            )

            stage_at = time.monotonic()
            self._emit(progress, streaming.stage_started("validate", candidates_count=len(enriched)))
            validated = await self.validator.validate(topic, enriched, deadline=deadline)
            self._emit(
                progress,
                streaming.stage_completed(
                    "validate",
                    validated_count=len(validated),
                    duration_ms=int((time.monotonic() - stage_at) * 1000),
                ),
            )

            sources = apply_quality_gate(validated, threshold=threshold, max_sources=max_sources)
            self.log.info(
                f"Quality gate kept {len(sources)} of {len(validated)} sources "
                f"(threshold={threshold}, max={max_sources})."
            )
        except PipelineError as exc:
            self.log.error(f"Pipeline stopped at checkpoint {exc.checkpoint!r}: {exc.message}")
            self._emit(progress, streaming.error(exc.message, checkpoint=exc.checkpoint))
            raise

        runtime_ms = int((time.monotonic() - started_at) * 1000)
        log_event(
            "sources_ready",
            f"Grounding complete for {topic!r}",
            sources=len(sources),
            runtime_ms=runtime_ms,
        )
        self._emit(
            progress,
            streaming.sources_ready(
                [source.model_dump(mode="json", by_alias=True) for source in sources],
                runtime_ms=runtime_ms,
            ),
        )
        return sources

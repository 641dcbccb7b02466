from __future__ import annotations

import asyncio
from typing import Mapping

from groundwork.config import settings
from groundwork.models.events import ProgressCallback
from groundwork.models.sources import Deadline, Provider, RawResult, dedupe_by_link
from groundwork.services import streaming
from groundwork.services.logger import get_logger
from groundwork.tools.search_provider import ProviderAdapter


def _emit(progress: ProgressCallback | None, event) -> None:
    if progress is not None:
        progress(event)


async def federated_search(
    query: str,
    adapters: Mapping[Provider, ProviderAdapter],
    limits: Mapping[Provider, int],
    *,
    deadline: Deadline | None = None,
    provider_timeout: float | None = None,
    progress: ProgressCallback | None = None,
    log=None,
) -> list[RawResult]:
    """Query every enabled provider concurrently and merge unique results.

    A provider that raises or times out contributes zero results; it never
    aborts its siblings.
    """
    log = log or get_logger("search")
    deadline = deadline or Deadline.none()
    timeout = provider_timeout if provider_timeout is not None else settings.provider_timeout_seconds

    enabled = [
        (provider, adapter, int(limits.get(provider, 0)))
        for provider, adapter in adapters.items()
        if int(limits.get(provider, 0)) > 0
    ]
    log.info(
        f"Starting federated search for {query!r} across sources: "
        f"{', '.join(p.value for p, _, _ in enabled) or 'none'}"
    )

    async def run_provider(adapter: ProviderAdapter, limit: int) -> list[RawResult]:
        return await asyncio.wait_for(
            adapter.search(query, limit=limit, deadline=deadline),
            timeout=deadline.remaining(timeout),
        )

    settled = await asyncio.gather(
        *(run_provider(adapter, limit) for _, adapter, limit in enabled),
        return_exceptions=True,
    )

    merged: list[RawResult] = []
    for (provider, _, _), outcome in zip(enabled, settled):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            reason = "timed out" if isinstance(outcome, TimeoutError) else repr(outcome)
            log.warning(f"{provider.value} search failed: {reason}")
            _emit(progress, streaming.provider_failed(provider.value, reason))
            continue
        log.info(f"{provider.value} returned {len(outcome)} results.")
        _emit(progress, streaming.provider_result(provider.value, len(outcome)))
        merged.extend(outcome)

    unique = dedupe_by_link(merged)
    log.info(f"Federated search complete. Total unique results: {len(unique)}")
    return unique

from __future__ import annotations

from typing import Iterable, Protocol

from groundwork.config import Settings, settings as default_settings
from groundwork.models.sources import Deadline, Provider, RawResult


class ProviderAdapter(Protocol):
    """One external source: builds its query, calls it, normalizes the reply."""

    provider: Provider

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]: ...


def default_limits(config: Settings | None = None) -> dict[Provider, int]:
    config = config or default_settings
    return {
        Provider.PUBMED: config.pubmed_limit,
        Provider.PREPRINT_ARCHIVE: config.preprint_archive_limit,
        Provider.PREPRINT_FEED: config.preprint_feed_limit,
        Provider.PATENTS: config.patents_limit,
        Provider.WEB_SEARCH: config.web_search_limit,
        Provider.GENE_DATABASE: config.gene_database_limit,
        Provider.GROUNDED_WEB: config.grounded_web_limit,
    }


def resolve_limits(
    providers: Iterable[Provider | str] | None,
    limits: dict[Provider, int] | None = None,
    *,
    config: Settings | None = None,
) -> dict[Provider, int]:
    """Merge the enabled-provider set with per-provider limits.

    A provider is enabled when it is in ``providers`` (all when ``None``) and
    its limit is above zero.
    """
    merged = default_limits(config)
    if limits:
        merged.update({Provider(key): int(value) for key, value in limits.items()})
    enabled = set(Provider) if providers is None else {Provider(p) for p in providers}
    return {
        provider: max(limit, 0) if provider in enabled else 0
        for provider, limit in merged.items()
    }


def build_adapters(fetcher, *, model: str | None = None, llm=None) -> dict[Provider, ProviderAdapter]:
    from groundwork.agents.grounded_search import GroundedWebAdapter
    from groundwork.tools.duckduckgo_search import WebSearchAdapter
    from groundwork.tools.opengenes_search import GeneDatabaseAdapter
    from groundwork.tools.patent_search import PatentAdapter
    from groundwork.tools.preprint_archive_search import PreprintArchiveAdapter
    from groundwork.tools.preprint_feed import PreprintFeedAdapter
    from groundwork.tools.pubmed_search import PubMedAdapter

    adapters: list[ProviderAdapter] = [
        PubMedAdapter(fetcher),
        PreprintArchiveAdapter(fetcher),
        PreprintFeedAdapter(fetcher),
        PatentAdapter(fetcher),
        WebSearchAdapter(fetcher),
        GeneDatabaseAdapter(fetcher),
        GroundedWebAdapter(model=model, llm=llm),
    ]
    return {adapter.provider: adapter for adapter in adapters}

from __future__ import annotations

from groundwork.agents.orchestrator import GroundingPipeline
from groundwork.config import settings
from groundwork.models.sources import Provider
from groundwork.tools.search_provider import default_limits

PROVIDER_DESCRIPTIONS: dict[Provider, str] = {
    Provider.PUBMED: "Biomedical literature index (title/abstract search).",
    Provider.PREPRINT_ARCHIVE: "Preprints mirrored into the open-access archive.",
    Provider.PREPRINT_FEED: "Live feed of new preprints, screened by the relevance filter.",
    Provider.PATENTS: "Patent full-text search.",
    Provider.WEB_SEARCH: "General web search; result pages are excavated for primary links.",
    Provider.GENE_DATABASE: "Curated gene and longevity-intervention database.",
    Provider.GROUNDED_WEB: "Model-driven web search; only cited URLs are kept.",
}


def get_available_providers() -> list[dict]:
    """Return every provider with its default result limit."""
    limits = default_limits(settings)
    return [
        {
            "id": provider,
            "description": PROVIDER_DESCRIPTIONS[provider],
            "default_limit": limits[provider],
        }
        for provider in Provider
    ]


def build_pipeline(model: str | None = None) -> GroundingPipeline:
    return GroundingPipeline(settings, model=model)

from __future__ import annotations

from typing import Iterable

from groundwork.models.sources import GroundingSource

DEFAULT_RELIABILITY_THRESHOLD = 0.2
DEFAULT_MAX_SOURCES = 60


def apply_quality_gate(
    sources: Iterable[GroundingSource],
    *,
    threshold: float = DEFAULT_RELIABILITY_THRESHOLD,
    max_sources: int = DEFAULT_MAX_SOURCES,
) -> list[GroundingSource]:
    """Drop sources below ``threshold``, order by reliability, keep the top ``max_sources``.

    The sort is stable, so sources with equal reliability keep their input order.
    """
    kept = [source for source in sources if source.reliability >= threshold]
    kept.sort(key=lambda source: source.reliability, reverse=True)
    return kept[: max(max_sources, 0)]

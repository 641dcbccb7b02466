from __future__ import annotations

import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from groundwork.errors import DeadlineExceeded


class Provider(StrEnum):
    PUBMED = "pubmed"
    PREPRINT_ARCHIVE = "preprint_archive"
    PREPRINT_FEED = "preprint_feed"
    PATENTS = "patents"
    WEB_SEARCH = "web_search"
    GENE_DATABASE = "gene_database"
    GROUNDED_WEB = "grounded_web"


class EnrichmentOutcome(StrEnum):
    API_HIT = "api-hit"
    SCRAPE_HIT = "scrape-hit"
    FETCH_FAILED = "fetch-failed"
    SKIPPED = "skipped"


class SourceStatus(StrEnum):
    UNVERIFIED = "unverified"
    VALID = "valid"
    INVALID = "invalid"
    VALIDATING = "validating"
    FETCH_FAILED = "fetch-failed"


@dataclass(frozen=True, slots=True)
class RawResult:
    title: str
    link: str
    snippet: str
    origin: Provider


@dataclass(frozen=True, slots=True)
class ClassifiedResult:
    title: str
    link: str
    snippet: str
    origin: Provider
    is_primary_domain: bool

    @classmethod
    def from_raw(cls, raw: RawResult, *, is_primary_domain: bool) -> "ClassifiedResult":
        return cls(
            title=raw.title,
            link=raw.link,
            snippet=raw.snippet,
            origin=raw.origin,
            is_primary_domain=is_primary_domain,
        )


@dataclass(frozen=True, slots=True)
class EnrichedResult:
    title: str
    link: str
    snippet: str
    origin: Provider
    is_primary_domain: bool
    abstract_text: str
    doi_confirmed: bool
    outcome: EnrichmentOutcome


def clamp_reliability(value: object) -> float:
    try:
        score = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return max(0.0, min(score, 1.0))


class GroundingSource(BaseModel):
    """A validated, reliability-scored document handed to analysis generation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    uri: str
    title: str
    status: SourceStatus = SourceStatus.VALID
    origin: Provider
    content: str = ""
    reliability: float = Field(default=0.0, ge=0.0, le=1.0)
    reliability_justification: str = ""
    reason: str = ""

    @field_validator("reliability", mode="before")
    @classmethod
    def _clamp(cls, value: object) -> float:
        return clamp_reliability(value)


class Deadline:
    """Monotonic deadline shared by every call inside one pipeline run."""

    def __init__(self, seconds: float | None):
        self._expires_at = None if seconds is None else time.monotonic() + max(seconds, 0.0)

    @classmethod
    def none(cls) -> "Deadline":
        return cls(None)

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self, cap: float | None = None) -> float | None:
        """Seconds left, bounded by ``cap``; raises once the deadline has passed."""
        if self._expires_at is None:
            return cap
        left = self._expires_at - time.monotonic()
        if left <= 0:
            raise DeadlineExceeded("pipeline deadline exceeded")
        return left if cap is None else min(left, cap)


_T = TypeVar("_T", RawResult, ClassifiedResult, EnrichedResult)


def dedupe_by_link(results: Iterable[_T]) -> list[_T]:
    """Deduplicate on the exact link string, keeping the first occurrence."""
    by_link: dict[str, _T] = {}
    for item in results:
        if not item.link:
            continue
        by_link.setdefault(item.link, item)
    return list(by_link.values())

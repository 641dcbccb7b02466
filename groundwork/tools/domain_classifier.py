from __future__ import annotations

from typing import Iterable

from groundwork.models.sources import ClassifiedResult, RawResult
from groundwork.tools.web_utils import normalize_host

# Hosts that publish authoritative scholarly, preprint or patent content.
PRIMARY_SOURCE_DOMAINS: tuple[str, ...] = (
    "pubmed.ncbi.nlm.nih.gov",
    "pmc.ncbi.nlm.nih.gov",
    "biorxiv.org",
    "medrxiv.org",
    "arxiv.org",
    "patents.google.com",
    "uspto.gov",
    "nature.com",
    "science.org",
    "cell.com",
    "jamanetwork.com",
    "bmj.com",
    "thelancet.com",
    "nejm.org",
    "pnas.org",
    "frontiersin.org",
    "plos.org",
    "mdpi.com",
    "acs.org",
)


def is_primary_domain(url: str) -> bool:
    """Exact or dotted-suffix host match; path and query never matter."""
    host = normalize_host(url)
    if not host:
        return False
    return any(host == domain or host.endswith("." + domain) for domain in PRIMARY_SOURCE_DOMAINS)


def classify(results: Iterable[RawResult]) -> list[ClassifiedResult]:
    return [
        ClassifiedResult.from_raw(result, is_primary_domain=is_primary_domain(result.link))
        for result in results
    ]

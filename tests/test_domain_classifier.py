from __future__ import annotations

import pytest

from groundwork.models.sources import Provider, RawResult, dedupe_by_link
from groundwork.tools.domain_classifier import classify, is_primary_domain


@pytest.mark.parametrize(
    "url",
    [
        "https://pubmed.ncbi.nlm.nih.gov/31234567/",
        "https://www.biorxiv.org/content/10.1101/2024.01.01.000001v1",
        "https://patents.google.com/patent/US1234567B2/en",
        "https://www.nature.com/articles/s41586-020-2649-2",
        "https://journals.plos.org/plosone/article?id=10.1371/journal.pone.0000001",
        "https://pmc.ncbi.nlm.nih.gov/articles/PMC1234567/",
    ],
)
def test_primary_hosts_are_recognized(url):
    assert is_primary_domain(url) is True


@pytest.mark.parametrize(
    "url",
    [
        "https://www.sciencedaily.com/releases/2024/01/240101.htm",
        "https://notnature.com/articles/x",
        "https://www.ncbi.nlm.nih.gov/gene/7157",
        "not a url",
        "",
    ],
)
def test_secondary_or_invalid_urls_are_not_primary(url):
    assert is_primary_domain(url) is False


def test_classification_is_stable_across_path_and_query():
    variants = [
        "https://www.cell.com/cell/fulltext/S0092-8674(24)00001-1",
        "https://www.cell.com/",
        "https://www.cell.com/search?q=senolytics&page=3",
        "https://CELL.com/cell/fulltext/other#section",
    ]
    assert {is_primary_domain(url) for url in variants} == {True}


@pytest.mark.parametrize(
    "variants, expected",
    [
        (
            [
                "https://www.ncbi.nlm.nih.gov/pmc/articles/PMC1/",
                "https://www.ncbi.nlm.nih.gov/gene/7157",
                "https://www.ncbi.nlm.nih.gov/?term=senolytics",
            ],
            False,
        ),
        (
            [
                "https://pmc.ncbi.nlm.nih.gov/articles/PMC1/",
                "https://pmc.ncbi.nlm.nih.gov/search/?term=senolytics",
            ],
            True,
        ),
    ],
)
def test_ncbi_hosts_classify_the_same_for_every_path(variants, expected):
    assert {is_primary_domain(url) for url in variants} == {expected}


def test_classify_keeps_fields_and_flags_each_result():
    results = [
        RawResult("A", "https://www.nejm.org/doi/full/10.1056/x", "s", Provider.WEB_SEARCH),
        RawResult("B", "https://example.com/blog", "s", Provider.WEB_SEARCH),
    ]
    classified = classify(results)
    assert [c.is_primary_domain for c in classified] == [True, False]
    assert classified[0].title == "A" and classified[0].origin == Provider.WEB_SEARCH


def test_dedupe_by_link_is_idempotent_and_keeps_first():
    results = [
        RawResult("first", "https://a.org/1", "", Provider.PUBMED),
        RawResult("other", "https://a.org/2", "", Provider.PATENTS),
        RawResult("second", "https://a.org/1", "", Provider.WEB_SEARCH),
        RawResult("case", "https://a.org/1/", "", Provider.WEB_SEARCH),
        RawResult("empty", "", "", Provider.WEB_SEARCH),
    ]
    once = dedupe_by_link(results)
    twice = dedupe_by_link(once)

    assert once == twice
    assert [r.title for r in once] == ["first", "other", "case"]

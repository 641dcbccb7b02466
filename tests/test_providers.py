from __future__ import annotations

import json
from urllib.parse import quote

import pytest

from groundwork.models.sources import Provider
from groundwork.tools.duckduckgo_search import DDG_HTML_URL, WebSearchAdapter, decode_redirect, parse_results
from groundwork.tools.opengenes_search import OPEN_GENES_SEARCH_URL, GeneDatabaseAdapter, gene_record_to_result
from groundwork.tools.patent_search import PATENTS_QUERY_URL, PatentAdapter, parse_patent_payload
from groundwork.tools.preprint_archive_search import PreprintArchiveAdapter, build_archive_query
from groundwork.tools.preprint_feed import FEED_URL, PreprintFeedAdapter, parse_feed
from groundwork.tools.pubmed_search import ESEARCH_URL, ESUMMARY_URL, PubMedAdapter
from groundwork.tools.search_provider import resolve_limits


def _esummary(records: dict[str, dict]) -> dict:
    return {"result": {"uids": list(records), **records}}


@pytest.mark.asyncio
async def test_pubmed_adapter_runs_search_then_summary(fake_fetcher_factory):
    seen_terms: list[str] = []

    def esearch(params):
        seen_terms.append(params["term"])
        assert params["db"] == "pubmed"
        return {"esearchresult": {"idlist": ["111", "222"]}}

    fetcher = fake_fetcher_factory(
        json_pages={
            ESEARCH_URL: esearch,
            ESUMMARY_URL: _esummary(
                {
                    "111": {
                        "title": "Senolytics reduce frailty",
                        "authors": [{"name": "Doe J"}, {"name": "Roe K"}],
                        "source": "Nature",
                        "pubdate": "2024 Jan",
                    },
                    "222": {"title": "Second", "authors": [], "source": "Cell", "pubdate": "2023"},
                }
            ),
        }
    )

    results = await PubMedAdapter(fetcher).search("senolytics", limit=5)

    assert seen_terms == ["senolytics[Title/Abstract]"]
    assert [r.link for r in results] == [
        "https://pubmed.ncbi.nlm.nih.gov/111/",
        "https://pubmed.ncbi.nlm.nih.gov/222/",
    ]
    assert results[0].snippet == "Authors: Doe J, Roe K. Journal: Nature. PubDate: 2024 Jan"
    assert results[1].snippet.startswith("Authors: N/A.")
    assert {r.origin for r in results} == {Provider.PUBMED}


@pytest.mark.asyncio
async def test_pubmed_adapter_with_no_ids_skips_summary(fake_fetcher_factory):
    fetcher = fake_fetcher_factory(json_pages={ESEARCH_URL: {"esearchresult": {"idlist": []}}})
    assert await PubMedAdapter(fetcher).search("nothing here", limit=5) == []
    assert [url for _, url in fetcher.calls] == [ESEARCH_URL]


def test_archive_query_expands_tokens_and_restricts_to_preprints():
    assert build_archive_query("senolytic aging in mice") == (
        '(("senolytic aging in mice") OR (senolytic OR aging OR mice)) AND biorxiv[journal]'
    )


@pytest.mark.asyncio
async def test_preprint_archive_prefers_pmc_link(fake_fetcher_factory):
    fetcher = fake_fetcher_factory(
        json_pages={
            ESEARCH_URL: {"esearchresult": {"idlist": ["9", "10"]}},
            ESUMMARY_URL: _esummary(
                {
                    "9": {
                        "title": "Preprint A",
                        "authors": [{"name": "Lee S"}],
                        "pubdate": "2024",
                        "articleids": [{"idtype": "pmc", "value": "PMC999"}],
                    },
                    "10": {"title": "Preprint B", "authors": [], "pubdate": "2023", "articleids": []},
                }
            ),
        }
    )

    results = await PreprintArchiveAdapter(fetcher).search("senolytics", limit=5)

    assert results[0].link == "https://pmc.ncbi.nlm.nih.gov/articles/PMC999/"
    assert results[1].link == "https://pubmed.ncbi.nlm.nih.gov/10/"
    assert results[0].snippet == "Authors: Lee S. PubDate: 2024."
    assert results[0].origin == Provider.PREPRINT_ARCHIVE


FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>bioRxiv</title>
    <item>
      <title>Senescent cell clearance in aged mice</title>
      <link>https://www.biorxiv.org/content/10.1101/2024.05.01.000001v1?rss=1</link>
      <description>&lt;p&gt;Senescent cells &lt;b&gt;accumulate&lt;/b&gt; with age.&lt;/p&gt;</description>
    </item>
    <item>
      <title>Protein folding at scale</title>
      <link>https://www.biorxiv.org/content/10.1101/2024.05.01.000002v1?rss=1</link>
      <description>Folding results.</description>
    </item>
    <item>
      <title>Third item</title>
      <link>https://www.biorxiv.org/content/10.1101/2024.05.01.000003v1?rss=1</link>
      <description>More.</description>
    </item>
  </channel>
</rss>
"""


def test_parse_feed_strips_markup_and_honors_limit():
    results = parse_feed(FEED_XML, limit=2)

    assert len(results) == 2
    assert results[0].title == "Senescent cell clearance in aged mice"
    assert results[0].snippet.startswith("Senescent cells accumulate")
    assert results[0].snippet.endswith("...")
    assert "<" not in results[0].snippet
    assert results[0].origin == Provider.PREPRINT_FEED


@pytest.mark.asyncio
async def test_feed_adapter_returns_unfiltered_items(fake_fetcher_factory):
    fetcher = fake_fetcher_factory({FEED_URL: FEED_XML})
    results = await PreprintFeedAdapter(fetcher).search("anything", limit=50)
    assert len(results) == 3


def test_patent_payload_tolerates_leading_garbage():
    assert parse_patent_payload(')]}\'\n{"results": {}}') == {"results": {}}
    with pytest.raises(ValueError):
        parse_patent_payload("<html>rate limited</html>")


@pytest.mark.asyncio
async def test_patent_adapter_reads_first_cluster(fake_fetcher_factory):
    body = ")]}'\n" + json.dumps(
        {
            "results": {
                "cluster": [
                    {
                        "result": [
                            {
                                "patent": {
                                    "publication_number": "US1234567B2",
                                    "title": "Senolytic <b>compound</b>",
                                    "inventor_normalized": ["Jane Roe", "Max Mustermann"],
                                    "assignee": "Acme Bio",
                                    "publication_date": "2020-01-01",
                                }
                            },
                            {"patent": {"title": "missing number"}},
                        ]
                    }
                ]
            }
        }
    )
    url = PATENTS_QUERY_URL.format(query=quote("senolytic compounds", safe=""))
    fetcher = fake_fetcher_factory({url: body})

    results = await PatentAdapter(fetcher).search("senolytic compounds", limit=5)

    assert len(results) == 1
    assert results[0].title == "Senolytic compound"
    assert results[0].link == "https://patents.google.com/patent/US1234567B2/en"
    assert results[0].snippet == (
        "Inventor: Jane Roe, Max Mustermann. Assignee: Acme Bio. Publication Date: 2020-01-01"
    )


DDG_HTML = """
<div class="results">
  <div class="result web-result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fwww.nature.com%2Farticles%2Fabc&amp;rut=xyz">Nature paper</a>
    <a class="result__snippet">Senolytics in <b>mice</b>.</a>
  </div>
  <div class="result web-result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fblog.example.com%2Fpost">No snippet</a>
  </div>
  <div class="result web-result">
    <a class="result__a" href="https://ads.example.com/">Ad</a>
    <a class="result__snippet">Sponsored.</a>
  </div>
</div>
"""


def test_decode_redirect_reads_uddg_parameter():
    assert decode_redirect("/l/?uddg=https%3A%2F%2Fa.org%2Fx%3Fy%3D1&rut=1") == "https://a.org/x?y=1"
    assert decode_redirect("https://ads.example.com/") is None


def test_parse_results_requires_title_snippet_and_redirect():
    results = parse_results(DDG_HTML)
    assert len(results) == 1
    assert results[0].link == "https://www.nature.com/articles/abc"
    assert results[0].title == "Nature paper"
    assert results[0].snippet == "Senolytics in mice ."


@pytest.mark.asyncio
async def test_web_search_adapter_caps_results(fake_fetcher_factory):
    url = DDG_HTML_URL.format(query=quote("senolytics", safe=""))
    fetcher = fake_fetcher_factory({url: DDG_HTML})
    assert len(await WebSearchAdapter(fetcher).search("senolytics", limit=0)) == 0
    assert len(await WebSearchAdapter(fetcher).search("senolytics", limit=5)) == 1


GENE_RECORD = {
    "symbol": "SIRT6",
    "name": "sirtuin 6",
    "researches": {
        "increaseLifespan": [
            {
                "interventionResultForLifespan": "increases lifespan",
                "lifespanMinChangePercent": 10,
                "lifespanMaxChangePercent": 15,
                "modelOrganism": "mouse",
                "interventions": {"experiment": [{"interventionMethod": "gene overexpression"}]},
            }
        ]
    },
    "agingMechanisms": [{"name": "genomic instability"}],
}


def test_gene_record_is_flattened_into_snippet():
    result = gene_record_to_result(GENE_RECORD)
    assert result.title == "SIRT6 (sirtuin 6)"
    assert result.link == "https://open-genes.com/api/gene/SIRT6"
    assert result.snippet == (
        "Organism: mouse. Effect: increases lifespan (10% to 15%). "
        "Hallmark: genomic instability. Intervention: gene overexpression."
    )


def test_gene_record_with_sparse_fields_uses_placeholders():
    result = gene_record_to_result({"symbol": "FOXO3", "name": "forkhead box O3"})
    assert result.snippet == "Organism: N/A. Effect: unclear (N/A). Hallmark: N/A. Intervention: N/A."


@pytest.mark.asyncio
async def test_gene_database_adapter_parses_items(fake_fetcher_factory):
    url = OPEN_GENES_SEARCH_URL.format(query=quote("SIRT6", safe=""))
    fetcher = fake_fetcher_factory({url: json.dumps({"items": [GENE_RECORD, {"name": "no symbol"}]})})
    results = await GeneDatabaseAdapter(fetcher).search("SIRT6", limit=5)
    assert [r.title for r in results] == ["SIRT6 (sirtuin 6)"]


def test_resolve_limits_disables_unselected_and_zero_limit_providers():
    limits = resolve_limits(
        [Provider.PUBMED, "patents"],
        {Provider.PATENTS: 0, Provider.PUBMED: 3},
    )
    assert limits[Provider.PUBMED] == 3
    assert limits[Provider.PATENTS] == 0
    assert limits[Provider.WEB_SEARCH] == 0
    assert set(limits) == set(Provider)

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Literal

from bs4 import BeautifulSoup, Tag

DOI_RE = re.compile(r"10\.\d{4,9}/[-._;()/:A-Za-z0-9]+")
_DOI_SUFFIX_RE = re.compile(r"(?:v\d+)?(?:\.(?:full|abstract|pdf|full-text|article-info|article-metrics))*$")
_SCHOLARLY_TYPES = {"scholarlyarticle", "medicalscholarlyarticle", "article", "report", "creativework"}
_TITLE_META = ("citation_title", "dc.title", "og:title", "twitter:title")
_ABSTRACT_META = (
    "citation_abstract",
    "dc.description",
    "og:description",
    "description",
    "twitter:description",
)
MIN_ABSTRACT_CHARS = 80
MIN_PARAGRAPH_CHARS = 200

ExtractMethod = Literal["json_ld", "meta_tags", "heuristic", "none"]


@dataclass(slots=True)
class DocumentMetadata:
    title: str
    abstract: str
    doi: str | None
    method: ExtractMethod


def _normalize_text(text: str) -> str:
    text = (text or "").replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


def find_doi(text: str) -> str | None:
    """Return the first DOI in ``text`` without trailing punctuation or version suffixes."""
    match = DOI_RE.search(text or "")
    if not match:
        return None
    doi = match.group(0).rstrip(".,;:)/")
    doi = _DOI_SUFFIX_RE.sub("", doi)
    return doi or None


def _iter_ld_nodes(payload: Any) -> Iterable[dict[str, Any]]:
    if isinstance(payload, list):
        for item in payload:
            yield from _iter_ld_nodes(item)
    elif isinstance(payload, dict):
        yield payload
        graph = payload.get("@graph")
        if isinstance(graph, list):
            yield from _iter_ld_nodes(graph)


def _ld_type(node: dict[str, Any]) -> str:
    kind = node.get("@type")
    if isinstance(kind, list):
        kind = kind[0] if kind else ""
    return str(kind or "").lower()


def _from_json_ld(soup: BeautifulSoup) -> tuple[str, str]:
    for script in soup.find_all("script", type=lambda t: t and "ld+json" in t):
        try:
            payload = json.loads(script.get_text() or "{}")
        except json.JSONDecodeError:
            continue
        for node in _iter_ld_nodes(payload):
            if _ld_type(node) not in _SCHOLARLY_TYPES:
                continue
            title = _normalize_text(str(node.get("headline") or node.get("name") or ""))
            abstract = _normalize_text(str(node.get("description") or node.get("abstract") or ""))
            if title or abstract:
                return title, abstract
    return "", ""


def _meta_map(soup: BeautifulSoup) -> dict[str, str]:
    values: dict[str, str] = {}
    for meta in soup.find_all("meta"):
        key = (meta.get("name") or meta.get("property") or "").strip().lower()
        content = meta.get("content")
        if key and content and key not in values:
            values[key] = _normalize_text(content)
    return values


def _first_non_empty(meta: dict[str, str], keys: Iterable[str]) -> str:
    for key in keys:
        value = meta.get(key)
        if value:
            return value
    return ""


def _looks_like_abstract(tag: Tag) -> bool:
    marker = " ".join(
        [str(tag.get("id") or "")] + [str(c) for c in (tag.get("class") or [])]
    ).lower()
    return "abstract" in marker


def _from_dom(soup: BeautifulSoup) -> tuple[str, str]:
    heading = soup.find("h1")
    title = _normalize_text(heading.get_text(" ")) if heading else ""

    for tag in soup.find_all(["section", "div", "p", "blockquote"]):
        if _looks_like_abstract(tag):
            text = _normalize_text(tag.get_text(" "))
            text = re.sub(r"^abstract[:\s]*", "", text, flags=re.IGNORECASE)
            if len(text) >= MIN_ABSTRACT_CHARS:
                return title, text

    for paragraph in soup.find_all("p"):
        text = _normalize_text(paragraph.get_text(" "))
        if len(text) >= MIN_PARAGRAPH_CHARS:
            return title, text
    return title, ""


def extract_document_metadata(html: str, url: str = "") -> DocumentMetadata:
    """Recover title, abstract and DOI from a scholarly landing page.

    Strategies run in order (linked-data block, citation/OpenGraph meta tags,
    heuristic DOM scrape); the first one that yields an abstract wins. The DOI
    comes from ``citation_doi`` or, failing that, any DOI in the body text.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    meta = _meta_map(soup)

    doi = find_doi(meta.get("citation_doi", "")) or find_doi(meta.get("dc.identifier", ""))
    if doi is None:
        body = soup.body.get_text(" ") if soup.body else soup.get_text(" ")
        doi = find_doi(body)

    page_title = _normalize_text(soup.title.string) if soup.title and soup.title.string else ""

    title, abstract = _from_json_ld(soup)
    if abstract:
        return DocumentMetadata(title=title or page_title, abstract=abstract, doi=doi, method="json_ld")

    meta_title = _first_non_empty(meta, _TITLE_META)
    meta_abstract = _first_non_empty(meta, _ABSTRACT_META)
    if meta_abstract:
        return DocumentMetadata(
            title=title or meta_title or page_title,
            abstract=meta_abstract,
            doi=doi,
            method="meta_tags",
        )

    dom_title, dom_abstract = _from_dom(soup)
    if dom_abstract:
        return DocumentMetadata(
            title=title or meta_title or dom_title or page_title,
            abstract=dom_abstract,
            doi=doi,
            method="heuristic",
        )

    return DocumentMetadata(
        title=title or meta_title or dom_title or page_title,
        abstract="",
        doi=doi,
        method="none",
    )

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from groundwork.errors import FetchError
from groundwork.llm_client import LLMReply
from groundwork.tools.resilient_fetch import FetchResult


class FakeLLM:
    """Stands in for the chat adapter; ``respond`` maps call kwargs to reply text."""

    def __init__(self, respond: Callable[[dict[str, Any]], str | LLMReply | Exception]):
        self.respond = respond
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> LLMReply:
        self.calls.append(kwargs)
        outcome = self.respond(kwargs)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, LLMReply):
            return outcome
        return LLMReply(text=outcome)


class FakeFetcher:
    """Serves canned bodies by URL; anything unknown fails like an exhausted fallback chain."""

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        *,
        json_pages: dict[str, Any] | None = None,
        redirects: dict[str, str] | None = None,
    ):
        self.pages = dict(pages or {})
        self.json_pages = dict(json_pages or {})
        self.redirects = dict(redirects or {})
        self.calls: list[tuple[str, str]] = []

    async def fetch(self, url: str, *, deadline=None) -> FetchResult:
        self.calls.append(("fetch", url))
        if url not in self.pages:
            raise FetchError(url, "HTTP 404")
        return FetchResult(
            body=self.pages[url],
            final_url=self.redirects.get(url, url),
            status_code=200,
            via="direct",
        )

    async def get_direct(self, url: str, *, params=None, headers=None, deadline=None) -> httpx.Response:
        self.calls.append(("get_direct", url))
        request = httpx.Request("GET", url, params=params)
        if url not in self.json_pages:
            raise httpx.HTTPStatusError(
                "not found",
                request=request,
                response=httpx.Response(404, request=request),
            )
        payload = self.json_pages[url]
        if callable(payload):
            payload = payload(params or {})
        return httpx.Response(200, request=request, content=json.dumps(payload).encode("utf-8"))


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture
def fake_fetcher_factory():
    return FakeFetcher

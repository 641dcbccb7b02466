from __future__ import annotations

import random

import httpx
import pytest

from groundwork.errors import DeadlineExceeded, FetchError
from groundwork.models.sources import Deadline
from groundwork.tools.resilient_fetch import (
    DEFAULT_PROXIES,
    OrderedRotation,
    ProxyTemplate,
    ResilientFetcher,
    ShuffledRotation,
)

TARGET = "https://example.org/paper?id=42"


def test_proxy_templates_encode_target_url():
    cors, allorigins, thing = DEFAULT_PROXIES
    assert cors.build(TARGET) == "https://corsproxy.io/?https%3A%2F%2Fexample.org%2Fpaper%3Fid%3D42"
    assert allorigins.build(TARGET).startswith("https://api.allorigins.win/raw?url=https%3A%2F%2F")
    assert thing.build(TARGET) == f"https://thingproxy.freeboard.io/fetch/{TARGET}"


def test_shuffled_rotation_is_a_permutation():
    rotation = ShuffledRotation(rng=random.Random(7))
    ordered = rotation.order(DEFAULT_PROXIES)
    assert sorted(p.name for p in ordered) == sorted(p.name for p in DEFAULT_PROXIES)


@pytest.mark.asyncio
async def test_falls_through_direct_and_two_proxies_to_third():
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "example.org":
            return httpx.Response(500, text="upstream error")
        if request.url.host == "corsproxy.io":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.host == "api.allorigins.win":
            return httpx.Response(503, text="busy")
        assert request.headers["X-Requested-With"] == "XMLHttpRequest"
        return httpx.Response(200, text="<html>recovered</html>")

    fetcher = ResilientFetcher(rotation=OrderedRotation(), transport=httpx.MockTransport(handler))
    result = await fetcher.fetch(TARGET)

    assert result.body == "<html>recovered</html>"
    assert result.via == "thingproxy.freeboard.io"
    assert result.final_url == TARGET
    assert hosts == ["example.org", "corsproxy.io", "api.allorigins.win", "thingproxy.freeboard.io"]


@pytest.mark.asyncio
async def test_stops_at_first_successful_proxy():
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "example.org":
            return httpx.Response(403)
        return httpx.Response(200, text="via relay")

    fetcher = ResilientFetcher(rotation=OrderedRotation(), transport=httpx.MockTransport(handler))
    result = await fetcher.fetch(TARGET)

    assert result.via == "corsproxy.io"
    assert hosts == ["example.org", "corsproxy.io"]


@pytest.mark.asyncio
async def test_direct_hit_reports_redirect_target():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/doi/10.1000/xyz":
            return httpx.Response(301, headers={"Location": "https://example.org/article/xyz"})
        return httpx.Response(200, text="article")

    fetcher = ResilientFetcher(transport=httpx.MockTransport(handler))
    result = await fetcher.fetch("https://example.org/doi/10.1000/xyz")

    assert result.via == "direct"
    assert result.final_url == "https://example.org/article/xyz"
    assert result.body == "article"


@pytest.mark.asyncio
async def test_raises_fetch_error_naming_url_when_everything_fails():
    fetcher = ResilientFetcher(
        proxies=[ProxyTemplate("relay", "https://relay.test/?{encoded}")],
        transport=httpx.MockTransport(lambda request: httpx.Response(502)),
    )

    with pytest.raises(FetchError) as excinfo:
        await fetcher.fetch(TARGET)

    assert excinfo.value.url == TARGET
    assert TARGET in str(excinfo.value)


@pytest.mark.asyncio
async def test_expired_deadline_aborts_before_any_request():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    fetcher = ResilientFetcher(transport=httpx.MockTransport(handler))
    with pytest.raises(DeadlineExceeded):
        await fetcher.fetch(TARGET, deadline=Deadline(0))
    assert calls == []


@pytest.mark.asyncio
async def test_get_direct_raises_on_error_status():
    fetcher = ResilientFetcher(transport=httpx.MockTransport(lambda request: httpx.Response(429)))
    with pytest.raises(httpx.HTTPStatusError):
        await fetcher.get_direct("https://api.example.org/items", params={"q": "x"})

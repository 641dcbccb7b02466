"""HTTP GET with a one-pass fallback chain: direct first, then CORS relays."""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Protocol, Sequence
from urllib.parse import quote

import httpx

from groundwork.config import settings
from groundwork.errors import FetchError
from groundwork.models.sources import Deadline
from groundwork.services.logger import get_logger


@dataclass(frozen=True, slots=True)
class ProxyTemplate:
    name: str
    template: str

    def build(self, url: str) -> str:
        return self.template.format(url=url, encoded=quote(url, safe=""))


DEFAULT_PROXIES: tuple[ProxyTemplate, ...] = (
    ProxyTemplate("corsproxy.io", "https://corsproxy.io/?{encoded}"),
    ProxyTemplate("api.allorigins.win", "https://api.allorigins.win/raw?url={encoded}"),
    ProxyTemplate("thingproxy.freeboard.io", "https://thingproxy.freeboard.io/fetch/{url}"),
)


class ProxyRotation(Protocol):
    def order(self, proxies: Sequence[ProxyTemplate]) -> list[ProxyTemplate]: ...


class ShuffledRotation:
    """Random order per call so no single relay always takes the first hit."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def order(self, proxies: Sequence[ProxyTemplate]) -> list[ProxyTemplate]:
        shuffled = list(proxies)
        self._rng.shuffle(shuffled)
        return shuffled


class OrderedRotation:
    def order(self, proxies: Sequence[ProxyTemplate]) -> list[ProxyTemplate]:
        return list(proxies)


@dataclass(slots=True)
class FetchResult:
    body: str
    final_url: str
    status_code: int
    via: str


class ResilientFetcher:
    """Direct request, then a linear scan over rotated relay proxies.

    There is no backoff or retry loop: every strategy is tried at most once
    and the first 2xx wins. ``final_url`` is the redirect target of a direct
    hit, or the original URL when a relay served the body.
    """

    def __init__(
        self,
        *,
        proxies: Sequence[ProxyTemplate] = DEFAULT_PROXIES,
        rotation: ProxyRotation | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        log=None,
    ):
        self.proxies = tuple(proxies)
        self.rotation = rotation or ShuffledRotation()
        self.timeout = float(timeout if timeout is not None else settings.request_timeout_seconds)
        self.user_agent = user_agent or settings.http_user_agent
        self._transport = transport
        self.log = log or get_logger("fetch")

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def fetch(self, url: str, *, deadline: Deadline | None = None) -> FetchResult:
        deadline = deadline or Deadline.none()
        last_error: Exception | str | None = None

        self.log.debug(f"Attempting direct fetch for: {url}")
        try:
            async with self._client(deadline.remaining(self.timeout)) as client:
                response = await client.get(url)
            if response.is_success:
                self.log.debug(f"Direct fetch successful for: {url}")
                return FetchResult(
                    body=response.text,
                    final_url=str(response.url),
                    status_code=response.status_code,
                    via="direct",
                )
            last_error = f"HTTP {response.status_code}"
            self.log.info(
                f"Direct fetch for {url} failed with status {response.status_code}. Falling back to proxy."
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            last_error = exc
            self.log.info(f"Direct fetch for {url} failed ({exc!r}). Falling back to proxy.")

        for proxy in self.rotation.order(self.proxies):
            proxy_url = proxy.build(url)
            try:
                async with self._client(deadline.remaining(self.timeout)) as client:
                    response = await client.get(
                        proxy_url,
                        headers={"X-Requested-With": "XMLHttpRequest"},
                    )
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                last_error = exc
                self.log.warning(f"Proxy {proxy.name} threw an error: {exc!r}. Trying next proxy.")
                continue

            if not response.is_success:
                last_error = f"{proxy.name} HTTP {response.status_code}"
                self.log.warning(
                    f"Proxy {proxy.name} failed with status {response.status_code}. "
                    f"Trying next. Error: {response.text[:150]}"
                )
                continue

            self.log.debug(f"Success with proxy: {proxy.name}")
            return FetchResult(
                body=response.text,
                final_url=url,
                status_code=response.status_code,
                via=proxy.name,
            )

        raise FetchError(url, last_error)

    async def get_direct(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        deadline: Deadline | None = None,
    ) -> httpx.Response:
        """Plain API GET without relay fallback; raises on non-2xx."""
        deadline = deadline or Deadline.none()
        async with self._client(deadline.remaining(self.timeout)) as client:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
        return response

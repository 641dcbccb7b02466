"""OpenRouter LLM client factory with a plain system+user call contract."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from groundwork.config import settings
from groundwork.services import logger as log_service


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class Citation:
    url: str
    title: str = ""


@dataclass
class LLMReply:
    text: str
    citations: list[Citation] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)


class OpenRouterChatAdapter:
    """Sends one system instruction plus one user message and reads back text.

    With ``web_search`` enabled the OpenRouter ``web`` plugin grounds the
    answer and the cited URLs come back as ``url_citation`` annotations.
    """

    def __init__(self, openai_client: Any):
        self._client = openai_client

    @staticmethod
    def _temperature_for_model(model: str) -> int:
        # Some OpenAI GPT-5-compatible gateways reject temperature=0.
        lowered = (model or "").lower()
        if "gpt-5" in lowered:
            return 1
        return 0

    @staticmethod
    def _read_citations(message: Any) -> list[Citation]:
        citations: list[Citation] = []
        for annotation in getattr(message, "annotations", None) or []:
            if isinstance(annotation, dict):
                kind = annotation.get("type")
                payload = annotation.get("url_citation") or {}
            else:
                kind = getattr(annotation, "type", None)
                payload = getattr(annotation, "url_citation", None) or {}
            if kind != "url_citation":
                continue
            if isinstance(payload, dict):
                url = payload.get("url")
                title = payload.get("title") or ""
            else:
                url = getattr(payload, "url", None)
                title = getattr(payload, "title", "") or ""
            if url:
                citations.append(Citation(url=str(url), title=str(title)))
        return citations

    def _from_openai_response(self, response: Any) -> LLMReply:
        choice = response.choices[0].message
        usage = getattr(response, "usage", None)
        return LLMReply(
            text=getattr(choice, "content", None) or "",
            citations=self._read_citations(choice),
            usage=Usage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )

    async def create(
        self,
        *,
        model: str,
        system: str,
        user: str,
        max_tokens: int | None = None,
        web_search: bool = False,
        timeout: float | None = None,
        caller: str = "pipeline",
    ) -> LLMReply:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens or settings.llm_max_tokens,
            "temperature": self._temperature_for_model(model),
        }
        if web_search:
            kwargs["extra_body"] = {
                "plugins": [{"id": "web", "max_results": settings.web_search_max_results}]
            }
        if timeout is not None:
            kwargs["timeout"] = timeout

        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as exc:
            log_service.log_llm_call(
                model=model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(exc),
            )
            raise

        reply = self._from_openai_response(response)
        log_service.log_llm_call(
            model=model,
            caller=caller,
            input_tokens=reply.usage.input_tokens,
            output_tokens=reply.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return reply


def get_client() -> OpenRouterChatAdapter:
    """Get OpenRouter client via OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    openai_client = AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
    )
    return OpenRouterChatAdapter(openai_client)


def get_model() -> str:
    """Get the active OpenRouter model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


_client: OpenRouterChatAdapter | None = None


def client() -> OpenRouterChatAdapter:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client

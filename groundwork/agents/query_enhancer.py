from __future__ import annotations

from groundwork.agents.base import BaseAgent
from groundwork.models.sources import Deadline
from groundwork.services.prompt_store import render_prompt
from groundwork.services.structured_reply import decode_structured_reply


class QueryEnhancer(BaseAgent):
    """Rewrites a free-text topic into a tighter literature-search query."""

    name = "query_enhancer"

    async def enhance(self, topic: str, *, deadline: Deadline | None = None) -> str:
        try:
            reply = await self.ask(
                render_prompt("query_enhancer.system_prompt"),
                render_prompt("query_enhancer.user_prompt", topic=topic),
                deadline=deadline,
            )
            payload = decode_structured_reply(reply.text)
            query = str(payload.get("query") or "").strip() if isinstance(payload, dict) else ""
        except Exception as exc:
            self.log.warning(f"Query enhancement failed, using original topic: {exc}")
            return topic

        if not query:
            return topic
        self.log.info(f"Enhanced query: {topic!r} -> {query!r}")
        return query

from __future__ import annotations

from groundwork.agents.base import BaseAgent
from groundwork.models.sources import Deadline, Provider, RawResult, dedupe_by_link
from groundwork.services.prompt_store import render_prompt
from groundwork.tools.web_utils import is_valid_url, normalize_host

GROUNDED_SNIPPET_PREFIX = "Source from AI-grounded web search for:"


class GroundedWebAdapter(BaseAgent):
    """Provider adapter backed by the model's own web grounding.

    Only the cited URLs become results; prose without citations cannot be
    verified and is dropped.
    """

    name = "search.grounded_web"
    provider = Provider.GROUNDED_WEB

    async def search(
        self,
        query: str,
        *,
        limit: int,
        deadline: Deadline | None = None,
    ) -> list[RawResult]:
        reply = await self.ask(
            render_prompt("grounded_search.system_prompt"),
            render_prompt("grounded_search.user_prompt", query=query, limit=limit),
            web_search=True,
            deadline=deadline,
        )

        if not reply.citations:
            self.log.warning("Model did not return grounding citations.")
            if len(reply.text.strip()) > 10:
                self.log.info("Ignoring uncited model prose; it cannot be verified as a source.")
            return []

        results = [
            RawResult(
                title=citation.title.strip() or normalize_host(citation.url) or citation.url,
                link=citation.url,
                snippet=f'{GROUNDED_SNIPPET_PREFIX} "{query}".',
                origin=self.provider,
            )
            for citation in reply.citations
            if is_valid_url(citation.url)
        ]
        unique = dedupe_by_link(results)[:limit]
        self.log.info(f"Found {len(unique)} sources from web grounding.")
        return unique

from __future__ import annotations

from groundwork.config import settings
from groundwork.llm_client import LLMReply, OpenRouterChatAdapter, client as llm_client, get_model
from groundwork.models.sources import Deadline
from groundwork.services.logger import get_logger


class BaseAgent:
    """Base for every pipeline step that talks to the model.

    Subclasses set ``name`` and build their own prompts; ``ask`` sends one
    system instruction plus one user message and returns the reply.
    """

    name: str = "base"

    def __init__(
        self,
        model: str | None = None,
        llm: OpenRouterChatAdapter | None = None,
        log=None,
    ):
        self.model = model or get_model()
        self.client = llm
        self.log = log or get_logger(self.name)

    async def ask(
        self,
        system: str,
        user: str,
        *,
        web_search: bool = False,
        deadline: Deadline | None = None,
    ) -> LLMReply:
        active_client = self.client or llm_client()
        timeout = (deadline or Deadline.none()).remaining(settings.provider_timeout_seconds)
        return await active_client.create(
            model=self.model,
            system=system,
            user=user,
            web_search=web_search,
            timeout=timeout,
            caller=self.name,
        )

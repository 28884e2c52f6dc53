# campusbot/services/chat_orchestrator.py
"""
One request/response cycle of the chat endpoint.

  validate -> classify -> search (best effort) -> build prompt -> complete -> respond

Collaborators are passed in; nothing here reads the environment.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from campusbot.core.config import Settings
from campusbot.core.errors import BadRequestError
from campusbot.models.chat import (
    ROLE_SYSTEM,
    ROLE_USER,
    HISTORY_ROLES,
    ChatMessage,
    ChatResponse,
    SearchResult,
)
from campusbot.services.completion_client import CompletionService
from campusbot.services.query_validator import QueryValidator
from campusbot.services.search_client import SearchClient

logger = logging.getLogger("campusbot.orchestrator")

HISTORY_WINDOW = 5

DEFAULT_PERSONA = (
    "You are a helpful chatbot for the university. You can only answer questions about the "
    "university and general educational topics. Never make up facts; admit when you are unsure."
)
DEFAULT_SEARCH_CONTEXT = "Here is current information related to the user's question:\n{answer}"


def history_window(messages: Sequence[ChatMessage], size: int = HISTORY_WINDOW) -> List[Dict[str, str]]:
    """Last ``size`` user/assistant turns in API shape. Client system messages are dropped."""
    turns = [m for m in messages if m.role in HISTORY_ROLES]
    if size <= 0:
        return []
    return [m.to_api() for m in turns[-size:]]


class ChatOrchestrator:
    def __init__(
        self,
        validator: QueryValidator,
        classifier,
        completion: CompletionService,
        search: Optional[SearchClient] = None,
        *,
        persona: str = DEFAULT_PERSONA,
        search_context_template: str = DEFAULT_SEARCH_CONTEXT,
        window: int = HISTORY_WINDOW,
    ):
        self.validator = validator
        self.classifier = classifier
        self.completion = completion
        self.search = search
        self.persona = persona
        self.search_context_template = search_context_template
        self.window = window

    @classmethod
    def from_settings(cls, settings: Settings, *, validator, classifier, completion, search=None) -> "ChatOrchestrator":
        llm = settings.llm_cfg()
        persona = llm.get("system_prompt")
        context = llm.get("search_context_template")
        return cls(
            validator,
            classifier,
            completion,
            search,
            persona=settings.render(persona) if persona else DEFAULT_PERSONA,
            # {answer} is filled per request
            search_context_template=settings.render(context, answer="{answer}") if context else DEFAULT_SEARCH_CONTEXT,
            window=settings.history_window,
        )

    # ---------- steps ----------
    @staticmethod
    def _last_user_message(messages: Optional[Sequence[ChatMessage]]) -> ChatMessage:
        if not messages:
            raise BadRequestError("No messages provided")
        last = messages[-1]
        if last.role != ROLE_USER:
            raise BadRequestError("Last message must be from user")
        return last

    def _try_search(self, query: str) -> Optional[SearchResult]:
        if self.search is None:
            logger.info("search indicated but no search client configured")
            return None
        try:
            return self.search.search(query)
        except Exception:
            logger.exception("search failed; continuing without search context")
            return None

    def build_messages(self, messages: Sequence[ChatMessage], result: Optional[SearchResult]) -> List[Dict[str, str]]:
        system = self.persona
        if result is not None:
            system += "\n\n" + self.search_context_template.format(answer=result.answer)
        return [{"role": ROLE_SYSTEM, "content": system}] + history_window(messages, self.window)

    # ---------- public ----------
    def handle(self, messages: Optional[Sequence[ChatMessage]]) -> ChatResponse:
        last = self._last_user_message(messages)

        verdict = self.validator.validate(last.content)
        if not verdict.valid:
            return ChatResponse(message=verdict.reason or "Invalid query", used_search=False)

        decision = self.classifier.decide(last.content, messages)
        logger.info("search decision=%s (%s)", decision.search, decision.explanation)

        result = self._try_search(last.content) if decision.search else None
        used_search = result is not None

        reply = self.completion.generate(self.build_messages(messages, result))

        return ChatResponse(
            message=reply,
            used_search=used_search,
            sources=result.sources if used_search else None,
        )

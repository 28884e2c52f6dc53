# campusbot/api/deps.py
from functools import lru_cache

from campusbot.core.config import Settings, get_settings
from campusbot.services.chat_orchestrator import ChatOrchestrator
from campusbot.services.completion_client import CompletionService
from campusbot.services.query_validator import QueryValidator
from campusbot.services.search_client import SearchClient
from campusbot.services.topic_classifier import build_classifier


@lru_cache(maxsize=1)
def settings_dep() -> Settings:
    return get_settings()


def build_orchestrator(settings: Settings) -> ChatOrchestrator:
    """Wire the collaborators. Raises ConfigurationError when the completion key is missing."""
    completion = CompletionService.from_settings(settings)
    search = SearchClient.from_settings(settings)
    return ChatOrchestrator.from_settings(
        settings,
        validator=QueryValidator.from_settings(settings),
        classifier=build_classifier(settings, completion),
        completion=completion,
        search=search,
    )


@lru_cache(maxsize=1)
def _cached_orchestrator() -> ChatOrchestrator:
    # failures are not cached, so a fixed environment is picked up on the next request
    return build_orchestrator(settings_dep())


def orchestrator_dep() -> ChatOrchestrator:
    return _cached_orchestrator()

# campusbot/services/completion_client.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence

import requests

from campusbot.core.config import Settings
from campusbot.core.errors import CompletionError, ConfigurationError, EmptyCompletionError
from campusbot.services.http import bearer_headers, build_session, first_choice_text

logger = logging.getLogger("campusbot.completion")

Messages = Sequence[Dict[str, str]]


class CompletionClient:
    """Thin client for an OpenAI-compatible /chat/completions endpoint."""

    def __init__(self, api_key: str, base_url: str, *, timeout=(5.0, 35.0), session: Optional[requests.Session] = None):
        if not api_key:
            raise ConfigurationError("No API key found. Set LLAMA_API_KEY or OPENAI_API_KEY in your environment.")
        self.api_key = api_key
        self.url = base_url.rstrip("/") + "/chat/completions"
        self.timeout = timeout
        self.session = session or build_session()

    def complete(self, messages: Messages, *, model: str, temperature: float, max_tokens: int) -> str:
        body = {
            "model": model,
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        try:
            resp = self.session.post(self.url, headers=bearer_headers(self.api_key), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("completion request failed model=%s: %r", model, e)
            raise CompletionError("Failed to reach the completion API", model=model) from e

        if resp.status_code >= 400:
            logger.warning("completion HTTP %s model=%s: %s", resp.status_code, model, (resp.text or "")[:300])
            raise CompletionError(f"Completion API error: {resp.status_code}", status_code=resp.status_code, model=model)

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("completion returned non-JSON body model=%s: %s", model, (resp.text or "")[:300])
            raise CompletionError("Completion API returned an unreadable body", model=model) from e

        content = first_choice_text(data)
        if not content:
            raise EmptyCompletionError("No response from AI model", model=model)
        return content


# ------------ Attempt policy ------------
@dataclass(frozen=True)
class ModelAttempt:
    model: str
    # statuses of *this* attempt's failure that allow moving on to the next attempt
    fallback_on: FrozenSet[int] = frozenset()

    def allows_fallback(self, err: CompletionError) -> bool:
        if isinstance(err, EmptyCompletionError):
            return False
        return err.upstream_status is not None and err.upstream_status in self.fallback_on


def attempt_plan(primary: str, fallback: str = "", statuses: FrozenSet[int] = frozenset()) -> List[ModelAttempt]:
    """Primary, then (optionally) one fallback model. Never more than two."""
    if not fallback or fallback == primary:
        return [ModelAttempt(primary)]
    return [ModelAttempt(primary, fallback_on=frozenset(statuses)), ModelAttempt(fallback)]


class CompletionService:
    """
    Runs an ordered attempt list against a CompletionClient:
    try primary; if it fails with a status the plan allows, try the fallback
    once; if the fallback fails too, the primary error propagates.
    """

    def __init__(
        self,
        client: CompletionClient,
        attempts: Sequence[ModelAttempt],
        *,
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ):
        if not attempts:
            raise ValueError("at least one model attempt is required")
        self.client = client
        self.attempts = list(attempts)
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "CompletionService":
        client = CompletionClient(
            settings.completion_api_key,
            settings.completion_base_url,
            timeout=settings.timeout,
            session=session or build_session(settings.pool_maxsize),
        )
        plan = attempt_plan(settings.completion_model, settings.fallback_model, settings.fallback_statuses)
        return cls(client, plan, temperature=settings.temperature, max_tokens=settings.max_tokens)

    @property
    def primary_model(self) -> str:
        return self.attempts[0].model

    def generate(self, messages: Messages, *, temperature: Optional[float] = None, max_tokens: Optional[int] = None) -> str:
        temperature = self.temperature if temperature is None else temperature
        max_tokens = self.max_tokens if max_tokens is None else max_tokens

        primary_error: Optional[CompletionError] = None
        for attempt in self.attempts:
            if primary_error is not None:
                logger.warning("falling back to model=%s after %s", attempt.model, primary_error)
            try:
                return self.client.complete(messages, model=attempt.model, temperature=temperature, max_tokens=max_tokens)
            except CompletionError as e:
                if primary_error is not None:
                    logger.error("fallback model=%s failed too: %s", attempt.model, e)
                    raise primary_error
                if not attempt.allows_fallback(e):
                    raise
                primary_error = e

        # only reachable when the last attempt itself allowed fallback
        raise primary_error

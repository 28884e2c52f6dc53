# campusbot/services/query_validator.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from campusbot.core.config import Settings

logger = logging.getLogger("campusbot.validator")

MIN_QUERY_LENGTH = 3

OFF_TOPIC_REPLY = "I can only help with general questions about {short_name}. Please ask something related to the university."
TOO_SHORT_REPLY = "Please provide a more specific question about {short_name}."

DEFAULT_BLOCKED_TERMS = (
    "porn", "sex", "drugs", "violence", "hate", "racism",
    "how to cheat", "homework answers", "exam answers",
    "illegal", "hack", "break into", "password",
)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None


class QueryValidator:
    """Rejects blocked or degenerate queries before any network call."""

    def __init__(self, blocked_terms: Iterable[str], *, min_length: int = MIN_QUERY_LENGTH, short_name: str = "the university"):
        self.blocked_terms = tuple(t.lower() for t in blocked_terms if t)
        self.min_length = min_length
        self.short_name = short_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "QueryValidator":
        campus = settings.campus
        terms = campus.get("blocked_terms")
        return cls(
            DEFAULT_BLOCKED_TERMS if terms is None else terms,
            min_length=int(campus.get("min_query_length", MIN_QUERY_LENGTH)),
            short_name=settings.short_name,
        )

    def validate(self, query: str) -> ValidationResult:
        text = (query or "").lower().strip()

        hit = next((t for t in self.blocked_terms if t in text), None)
        if hit:
            logger.info("query rejected: blocked term=%r", hit)
            return ValidationResult(False, OFF_TOPIC_REPLY.format(short_name=self.short_name))

        if len(text) < self.min_length:
            logger.info("query rejected: too short len=%d", len(text))
            return ValidationResult(False, TOO_SHORT_REPLY.format(short_name=self.short_name))

        return ValidationResult(True)

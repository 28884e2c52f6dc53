"""Exceptions raised by the chat pipeline.

Routes translate these into HTTP responses; collaborators never return
error-shaped dicts.
"""
from __future__ import annotations

from typing import Optional


class ChatbotError(Exception):
    """Base for every error the chat pipeline raises on purpose."""
    status_code: int = 500
    public_error: str = "Internal server error"


class BadRequestError(ChatbotError):
    """Malformed or empty chat request. Never retried."""
    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
        self.public_error = reason


class ConfigurationError(ChatbotError):
    """Missing credentials or unusable settings, detected at first use."""
    public_error = "Configuration error"


class SearchError(ChatbotError):
    """Search API failed. Callers continue without search context."""


class CompletionError(ChatbotError):
    """Completion API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, model: Optional[str] = None):
        super().__init__(message)
        self.upstream_status = status_code
        self.model = model


class EmptyCompletionError(CompletionError):
    """Completion API answered but without usable text."""

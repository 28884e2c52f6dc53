# campusbot/models/chat.py
from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SYSTEM = "system"
MESSAGE_ROLES = {ROLE_USER, ROLE_ASSISTANT, ROLE_SYSTEM}
# Roles forwarded to the completion API as conversation history
HISTORY_ROLES = {ROLE_USER, ROLE_ASSISTANT}

Role = Literal["user", "assistant", "system"]


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    role: Role
    content: str
    timestamp: Optional[datetime] = None

    def to_api(self) -> dict:
        """Shape expected by chat-completion APIs (no timestamp)."""
        return {"role": self.role, "content": self.content}


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: Optional[List[ChatMessage]] = None


class SearchResult(BaseModel):
    answer: str = ""
    sources: List[str] = Field(default_factory=list)


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    used_search: bool = Field(False, alias="usedSearch")
    sources: Optional[List[str]] = None
    error: Optional[str] = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SearchDecision(BaseModel):
    search: bool = False
    explanation: str = ""


__all__ = [
    "ROLE_USER", "ROLE_ASSISTANT", "ROLE_SYSTEM", "MESSAGE_ROLES", "HISTORY_ROLES", "Role",
    "ChatMessage", "ChatRequest", "ChatResponse", "SearchResult", "SearchDecision",
]

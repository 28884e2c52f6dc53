# campusbot/client.py
"""
Client-side conversation state, the same way the browser page keeps it:

  - transcript is an ordered list of ChatMessage, session only
  - the user's message is appended before the request resolves
  - one request in flight; a second send while loading is refused
  - the reply (or a fixed error message) is appended afterwards
  - sources are tracked by message index with an expand/collapse flag
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests

from campusbot.models.chat import ROLE_ASSISTANT, ROLE_USER, ChatMessage, ChatResponse

logger = logging.getLogger("campusbot.client")

ERROR_REPLY = "Sorry, I encountered an error. Please try again."
GREETING = "Hello! I'm the {name} Chatbot. I can help answer questions about {name}. What would you like to know?"


class ChatBusyError(RuntimeError):
    """A send was attempted while another request is outstanding."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def fetch_short_name(base_url: str, *, http=None, timeout: Optional[float] = 10.0) -> Optional[str]:
    """Institution short name from the server's /health/config, or None if unreachable."""
    http = http or requests.Session()
    kwargs = {"timeout": timeout} if timeout is not None else {}
    try:
        resp = http.get(base_url.rstrip("/") + "/health/config", **kwargs)
        if resp.status_code >= 400:
            return None
        return resp.json().get("shortName") or None
    except (requests.RequestException, ValueError):
        logger.warning("could not read /health/config from %s", base_url)
        return None


class ChatSession:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        *,
        http=None,
        timeout: Optional[float] = 60.0,
        greeting_name: Optional[str] = None,
    ):
        self.endpoint = base_url.rstrip("/") + "/api/chat"
        # anything with a requests-style post(); a FastAPI TestClient works too
        self.http = http or requests.Session()
        self.timeout = timeout
        self.messages: List[ChatMessage] = []
        self.is_loading = False
        self.sources: Dict[int, List[str]] = {}
        self._expanded: Dict[int, bool] = {}
        self.last_response: Optional[ChatResponse] = None
        if greeting_name:
            self.messages.append(ChatMessage(role=ROLE_ASSISTANT, content=GREETING.format(name=greeting_name), timestamp=_now()))

    # ---------- sources disclosure ----------
    def toggle_sources(self, index: int) -> bool:
        self._expanded[index] = not self._expanded.get(index, False)
        return self._expanded[index]

    def expanded(self, index: int) -> bool:
        return self._expanded.get(index, False)

    # ---------- wire ----------
    def _post(self, messages: List[ChatMessage]) -> ChatResponse:
        payload = {"messages": [m.model_dump(mode="json", exclude_none=True) for m in messages]}
        kwargs = {"json": payload}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        resp = self.http.post(self.endpoint, **kwargs)
        if resp.status_code >= 400:
            raise RuntimeError(f"Failed to send message (HTTP {resp.status_code})")
        return ChatResponse.model_validate(resp.json())

    def send(self, text: str) -> ChatMessage:
        """Send one user message and return the assistant message that was appended."""
        text = (text or "").strip()
        if not text:
            raise ValueError("empty message")
        if self.is_loading:
            raise ChatBusyError("a request is already in flight")

        user_message = ChatMessage(role=ROLE_USER, content=text, timestamp=_now())
        outgoing = self.messages + [user_message]
        self.messages.append(user_message)
        self.is_loading = True
        try:
            try:
                data = self._post(outgoing)
            except Exception:
                logger.exception("Error sending message")
                reply = ChatMessage(role=ROLE_ASSISTANT, content=ERROR_REPLY, timestamp=_now())
                self.messages.append(reply)
                return reply

            reply = ChatMessage(role=ROLE_ASSISTANT, content=data.message, timestamp=_now())
            self.messages.append(reply)
            if data.sources:
                self.sources[len(self.messages) - 1] = list(data.sources)
            self.last_response = data
            return reply
        finally:
            self.is_loading = False

# campusbot/services/search_client.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

import requests

from campusbot.core.config import Settings
from campusbot.core.errors import SearchError
from campusbot.models.chat import SearchResult
from campusbot.services.http import bearer_headers, build_session, first_choice_text

logger = logging.getLogger("campusbot.search")

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant that searches for accurate, up-to-date information. "
    "Provide a concise answer and include sources in the response metadata."
)
DEFAULT_QUERY_TEMPLATE = "Find current information related to: {query}"


# ------------ Source normalization ------------
# Providers answer in one of two shapes:
#   {"citations": ["https://...", {"url": "https://..."}, ...]}
#   {"search_results": [{"url": "https://...", "title": ...}, ...]}
# A "citations" list wins whenever present, even when empty.

def _usable_url(value: Any) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _citation_url(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        return _usable_url(item.get("url"))
    return _usable_url(item)


def _result_url(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        return _usable_url(item.get("url"))
    return None


def extract_sources(data: Any) -> List[str]:
    """Canonical ordered URL list from a search response; bad entries are dropped."""
    if not isinstance(data, dict):
        return []

    citations = data.get("citations")
    if isinstance(citations, list):
        urls = [_citation_url(c) for c in citations]
    else:
        results = data.get("search_results")
        if not isinstance(results, list):
            return []
        urls = [_result_url(r) for r in results]

    return [u for u in urls if u]


# ------------ Client ------------
class SearchClient:
    """Calls the search/answer API once per query. No retries."""

    def __init__(
        self,
        api_key: str,
        *,
        url: str = "https://api.perplexity.ai/chat/completions",
        model: str = "sonar",
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        query_template: str = DEFAULT_QUERY_TEMPLATE,
        temperature: float = 0.1,
        max_tokens: int = 1000,
        timeout=(5.0, 35.0),
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.system_prompt = system_prompt
        self.query_template = query_template
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session or build_session()

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "SearchClient":
        cfg = settings.search_cfg()
        system_prompt = cfg.get("system_prompt")
        template = cfg.get("query_template")
        return cls(
            settings.search_api_key,
            url=settings.search_url,
            model=settings.search_model,
            system_prompt=settings.render(system_prompt) if system_prompt else DEFAULT_SYSTEM_PROMPT,
            # {query} stays a placeholder until search time
            query_template=settings.render(template, query="{query}") if template else DEFAULT_QUERY_TEMPLATE,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.timeout,
            session=session or build_session(settings.pool_maxsize),
        )

    def _body(self, query: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": self.query_template.format(query=query)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def search(self, query: str) -> SearchResult:
        if not self.api_key:
            raise SearchError("No search API key configured. Set PERPLEXITY_API_KEY.")

        try:
            resp = self.session.post(self.url, headers=bearer_headers(self.api_key), json=self._body(query), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("search request failed: %r", e)
            raise SearchError("Failed to reach the search API") from e

        if resp.status_code >= 400:
            logger.warning("search HTTP %s: %s", resp.status_code, (resp.text or "")[:300])
            raise SearchError(f"Search API error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("search returned non-JSON body: %s", (resp.text or "")[:300])
            raise SearchError("Search API returned an unreadable body") from e

        result = SearchResult(answer=first_choice_text(data), sources=extract_sources(data))
        logger.info("search ok answer_len=%d sources=%d", len(result.answer), len(result.sources))
        return result

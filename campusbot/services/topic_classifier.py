# campusbot/services/topic_classifier.py
"""
Decides whether a query needs fresh institution-specific facts.

Two interchangeable classifiers share ``decide(query, history)``:
  - KeywordClassifier: substring match against the campus vocabulary
  - ModelClassifier: asks the completion model for a strict JSON verdict

Neither raises; on any doubt the answer is "no search".
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from campusbot.core.config import Settings
from campusbot.models.chat import HISTORY_ROLES, ROLE_USER, ChatMessage, SearchDecision

logger = logging.getLogger("campusbot.classifier")

_DECODER = json.JSONDecoder()

DEFAULT_KEYWORDS = (
    "sfsu", "san francisco state university", "san francisco state",
    "gators", "admission", "enrollment", "tuition", "fees", "campus",
    "classes", "courses", "departments", "faculty", "professors",
    "library", "housing", "dormitory", "dining", "events", "clubs",
    "sports", "athletics", "parking", "transportation", "muni",
    "registration", "schedule", "grades", "transcript", "graduation",
    "degree", "major", "minor", "academic calendar", "semester",
    "financial aid", "scholarships", "student services", "health center",
    "counseling", "career center", "bookstore",
)

DEFAULT_CLASSIFIER_PROMPT = (
    "Decide whether the question needs fresh, institution-specific facts from a web search. "
    "Reply ONLY with a JSON object of the form {\"search\": true|false, \"explanation\": \"<one short sentence>\"}."
)


class KeywordClassifier:
    def __init__(self, keywords: Iterable[str]):
        self.keywords = tuple(k.lower() for k in keywords if k)

    def decide(self, query: str, history: Sequence[ChatMessage] = ()) -> SearchDecision:
        text = (query or "").lower()
        hit = next((k for k in self.keywords if k in text), None)
        if hit:
            return SearchDecision(search=True, explanation=f"matched keyword '{hit}'")
        return SearchDecision(search=False, explanation="no campus keyword")


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse ``text`` as JSON, else the first ``{...}`` object inside it."""
    if not text:
        return None
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except ValueError:
        pass

    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = _DECODER.raw_decode(text, start)
            if isinstance(parsed, dict):
                return parsed
        except ValueError:
            pass
        start = text.find("{", start + 1)
    return None


def _coerce_decision(parsed: Dict[str, Any]) -> SearchDecision:
    flag = parsed.get("search")
    if isinstance(flag, str):
        flag = flag.strip().lower() in ("true", "yes", "1")
    return SearchDecision(search=bool(flag), explanation=str(parsed.get("explanation") or ""))


class ModelClassifier:
    """Delegates the search decision to the completion model."""

    def __init__(self, completion, system_prompt: str = DEFAULT_CLASSIFIER_PROMPT, *,
                 max_tokens: int = 150, context_turns: int = 2):
        self.completion = completion
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens
        self.context_turns = context_turns

    def _context(self, query: str, history: Sequence[ChatMessage]) -> List[Dict[str, str]]:
        """Up to ``context_turns`` user/assistant turns preceding the query."""
        turns = [m for m in history if m.role in HISTORY_ROLES]
        # history normally ends with the query itself
        if turns and turns[-1].role == ROLE_USER and turns[-1].content == query:
            turns = turns[:-1]
        if self.context_turns <= 0:
            return []
        return [m.to_api() for m in turns[-self.context_turns:]]

    def decide(self, query: str, history: Sequence[ChatMessage] = ()) -> SearchDecision:
        messages: List[Dict[str, str]] = [{"role": "system", "content": self.system_prompt}]
        messages += self._context(query, history)
        messages.append({"role": "user", "content": query})
        try:
            content = self.completion.generate(messages, temperature=0.0, max_tokens=self.max_tokens)
        except Exception:
            logger.exception("classifier call failed; continuing without search")
            return SearchDecision(search=False, explanation="classifier unavailable")

        parsed = extract_json_object(content)
        if parsed is None:
            logger.warning("classifier returned non-JSON content: %s", (content or "")[:300])
            return SearchDecision(search=False, explanation="unparseable classifier reply")

        decision = _coerce_decision(parsed)
        logger.debug("classifier decision search=%s why=%s", decision.search, decision.explanation)
        return decision


def build_classifier(settings: Settings, completion=None):
    if settings.classifier == "model":
        if completion is None:
            raise ValueError("model classifier needs a completion service")
        template = settings.llm_cfg().get("classifier_prompt")
        prompt = settings.render(template) if template else DEFAULT_CLASSIFIER_PROMPT
        return ModelClassifier(completion, prompt)
    if settings.classifier != "keyword":
        logger.warning("unknown classifier %r, using keyword", settings.classifier)
    keywords = settings.campus.get("keywords")
    return KeywordClassifier(DEFAULT_KEYWORDS if keywords is None else keywords)

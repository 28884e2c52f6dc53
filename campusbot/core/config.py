import os, json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Tuple

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PACKAGE_DIR = os.path.dirname(BASE_DIR)
DATA_DIR = os.path.join(PACKAGE_DIR, "data")
STATIC_DIR = os.path.join(PACKAGE_DIR, "static")

# Campus config (institution, prompts, vocabulary)
CONFIG_PATH = os.getenv("CAMPUSBOT_CONFIG_PATH", os.path.join(DATA_DIR, "campus_config.json"))


def load_campus_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


CAMPUS_CONFIG = load_campus_config()

# Completion API (OpenAI-compatible). LLAMA_API_KEY wins over OPENAI_API_KEY.
COMPLETION_API_KEY = os.getenv("LLAMA_API_KEY") or os.getenv("OPENAI_API_KEY") or ""
COMPLETION_BASE_URL = os.getenv("LLAMA_BASE_URL", "https://api.llama.com/compat/v1/")
COMPLETION_MODEL = os.getenv("CAMPUSBOT_COMPLETION_MODEL", "gpt-3.5-turbo")
FALLBACK_MODEL = os.getenv("CAMPUSBOT_FALLBACK_MODEL", "")
FALLBACK_STATUSES = os.getenv("CAMPUSBOT_FALLBACK_STATUSES", "400")
TEMPERATURE = float(os.getenv("CAMPUSBOT_TEMPERATURE", "0.1"))
MAX_TOKENS = int(os.getenv("CAMPUSBOT_MAX_TOKENS", "1000"))
HISTORY_WINDOW = int(os.getenv("CAMPUSBOT_HISTORY_WINDOW", "5"))

# Search API (Perplexity)
SEARCH_API_KEY = os.getenv("PERPLEXITY_API_KEY", "")
SEARCH_URL = os.getenv("PERPLEXITY_URL", "https://api.perplexity.ai/chat/completions")
SEARCH_MODEL = os.getenv("CAMPUSBOT_SEARCH_MODEL", "sonar")

# keyword | model
CLASSIFIER = os.getenv("CAMPUSBOT_CLASSIFIER", "keyword").strip().lower()

# ---------- Tunables ----------
CONNECT_TIMEOUT = float(os.getenv("CAMPUSBOT_CONNECT_TIMEOUT", "5"))   # seconds
READ_TIMEOUT    = float(os.getenv("CAMPUSBOT_READ_TIMEOUT", "35"))     # seconds
POOL_MAXSIZE    = int(os.getenv("CAMPUSBOT_POOL_MAXSIZE", "20"))

CORS_ORIGINS = os.getenv(
    "CAMPUSBOT_CORS_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8000,http://127.0.0.1:8000",
)


def _parse_statuses(raw: str) -> FrozenSet[int]:
    out = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if part.isdigit():
            out.add(int(part))
    return frozenset(out)


def _split_csv(raw: str) -> Tuple[str, ...]:
    return tuple(p.strip() for p in (raw or "").split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """Everything the chat pipeline needs, resolved once at startup."""
    completion_api_key: str = ""
    completion_base_url: str = "https://api.llama.com/compat/v1/"
    completion_model: str = "gpt-3.5-turbo"
    fallback_model: str = ""
    fallback_statuses: FrozenSet[int] = frozenset({400})
    temperature: float = 0.1
    max_tokens: int = 1000
    history_window: int = 5

    search_api_key: str = ""
    search_url: str = "https://api.perplexity.ai/chat/completions"
    search_model: str = "sonar"

    classifier: str = "keyword"
    connect_timeout: float = 5.0
    read_timeout: float = 35.0
    pool_maxsize: int = 20
    cors_origins: Tuple[str, ...] = ()

    campus: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    @property
    def institution_name(self) -> str:
        return (self.campus.get("institution") or {}).get("name", "the university")

    @property
    def short_name(self) -> str:
        inst = self.campus.get("institution") or {}
        return inst.get("short_name") or inst.get("name") or "the university"

    def llm_cfg(self) -> Dict[str, Any]:
        return self.campus.get("llm") or {}

    def search_cfg(self) -> Dict[str, Any]:
        return self.campus.get("search") or {}

    def render(self, template: str, **extra: Any) -> str:
        return template.format(name=self.institution_name, short_name=self.short_name, **extra)

    def summary(self) -> Dict[str, Any]:
        """Non-secret view for /health/config."""
        return {
            "institution": self.institution_name,
            "shortName": self.short_name,
            "completionModel": self.completion_model,
            "completionBaseUrl": self.completion_base_url,
            "completionKeyPresent": bool(self.completion_api_key),
            "fallbackModel": self.fallback_model or None,
            "fallbackStatuses": sorted(self.fallback_statuses),
            "searchModel": self.search_model,
            "searchKeyPresent": bool(self.search_api_key),
            "classifier": self.classifier,
            "historyWindow": self.history_window,
        }


def get_settings() -> Settings:
    return Settings(
        completion_api_key=COMPLETION_API_KEY,
        completion_base_url=COMPLETION_BASE_URL,
        completion_model=COMPLETION_MODEL,
        fallback_model=FALLBACK_MODEL,
        fallback_statuses=_parse_statuses(FALLBACK_STATUSES),
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
        history_window=HISTORY_WINDOW,
        search_api_key=SEARCH_API_KEY,
        search_url=SEARCH_URL,
        search_model=SEARCH_MODEL,
        classifier=CLASSIFIER,
        connect_timeout=CONNECT_TIMEOUT,
        read_timeout=READ_TIMEOUT,
        pool_maxsize=POOL_MAXSIZE,
        cors_origins=_split_csv(CORS_ORIGINS),
        campus=CAMPUS_CONFIG,
    )

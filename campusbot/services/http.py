from typing import Dict

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Outbound calls are never retried; a failed call is reported to the caller once.
NO_RETRY = Retry(total=0, connect=0, read=0, redirect=0, raise_on_status=False)


def build_session(pool_maxsize: int = 20) -> requests.Session:
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=NO_RETRY, pool_maxsize=pool_maxsize)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


def bearer_headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def first_choice_text(data) -> str:
    """choices[0].message.content of an OpenAI-style body, or ""."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or [{}]
    first = choices[0] if isinstance(choices, list) and choices and isinstance(choices[0], dict) else {}
    message = first.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""

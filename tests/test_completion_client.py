import pytest
import requests

from campusbot.core.config import Settings
from campusbot.core.errors import CompletionError, ConfigurationError, EmptyCompletionError
from campusbot.services.completion_client import (
    CompletionClient,
    CompletionService,
    ModelAttempt,
    attempt_plan,
)

from fakes import FakeResponse, FakeSession, ok_completion

MESSAGES = [{"role": "system", "content": "persona"}, {"role": "user", "content": "Where is the library?"}]


def _service(*responses, fallback="", statuses=frozenset({400})):
    session = FakeSession(*responses)
    client = CompletionClient("sk-test", "https://llm.example/v1/", session=session)
    return CompletionService(client, attempt_plan("primary-model", fallback, statuses)), session


# ---------- client ----------
def test_client_returns_first_choice_text():
    service, session = _service(ok_completion("It's J. Paul Leonard Library."))
    assert service.generate(MESSAGES) == "It's J. Paul Leonard Library."

    call = session.calls[0]
    assert call["url"] == "https://llm.example/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    assert call["json"] == {
        "model": "primary-model",
        "messages": MESSAGES,
        "temperature": 0.1,
        "max_tokens": 1000,
    }


def test_missing_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        CompletionClient("", "https://llm.example/v1")


def test_from_settings_without_key_fails_at_first_use():
    with pytest.raises(ConfigurationError):
        CompletionService.from_settings(Settings(completion_api_key=""))


@pytest.mark.parametrize("body", [
    {"choices": [{"message": {"content": ""}}]},
    {"choices": [{"message": {"content": None}}]},
    {"choices": []},
    {},
])
def test_empty_text_is_an_explicit_error(body):
    service, _ = _service(FakeResponse(200, body))
    with pytest.raises(EmptyCompletionError):
        service.generate(MESSAGES)


def test_whitespace_reply_is_returned_as_text():
    service, _ = _service(ok_completion("  "))
    assert service.generate(MESSAGES) == "  "


def test_http_error_carries_status():
    service, _ = _service(FakeResponse(503, text="overloaded"))
    with pytest.raises(CompletionError) as exc:
        service.generate(MESSAGES)
    assert exc.value.upstream_status == 503


def test_network_error_has_no_status():
    service, _ = _service(requests.Timeout("slow"))
    with pytest.raises(CompletionError) as exc:
        service.generate(MESSAGES)
    assert exc.value.upstream_status is None


# ---------- attempt policy ----------
def test_plan_without_fallback_is_single_attempt():
    assert attempt_plan("a") == [ModelAttempt("a")]
    assert attempt_plan("a", "a", frozenset({400})) == [ModelAttempt("a")]


def test_fallback_used_on_matching_status():
    service, session = _service(FakeResponse(400, text="bad model"), ok_completion("from fallback"), fallback="backup-model")
    assert service.generate(MESSAGES) == "from fallback"
    assert [c["json"]["model"] for c in session.calls] == ["primary-model", "backup-model"]


def test_non_matching_status_propagates_without_fallback():
    service, session = _service(FakeResponse(500), fallback="backup-model")
    with pytest.raises(CompletionError) as exc:
        service.generate(MESSAGES)
    assert exc.value.upstream_status == 500
    assert len(session.calls) == 1


def test_failed_fallback_reraises_primary_error():
    service, session = _service(FakeResponse(400), FakeResponse(502), fallback="backup-model")
    with pytest.raises(CompletionError) as exc:
        service.generate(MESSAGES)
    assert exc.value.model == "primary-model"
    assert exc.value.upstream_status == 400
    assert len(session.calls) == 2


def test_empty_primary_reply_never_falls_back():
    service, session = _service(ok_completion(""), fallback="backup-model")
    with pytest.raises(EmptyCompletionError):
        service.generate(MESSAGES)
    assert len(session.calls) == 1


def test_disabled_fallback_status_set():
    service, session = _service(FakeResponse(400), fallback="backup-model", statuses=frozenset())
    with pytest.raises(CompletionError):
        service.generate(MESSAGES)
    assert len(session.calls) == 1

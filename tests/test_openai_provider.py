import httpx
import openai
import pytest

from adapters.llm.openai_provider import OpenAIProvider
from nql.errors.codes import ErrorCode
from nql.errors.exceptions import ConfigurationError, UpstreamTransportError

_REQUEST = httpx.Request("POST", "http://localhost:9999/chat/completions")


class FakeCompletion:
    """Minimal fake object that matches what OpenAIProvider reads from SDK response."""

    def __init__(
        self, content: str, prompt_tokens: int = 5, completion_tokens: int = 7
    ):
        self.choices = [
            type("Choice", (), {"message": type("Msg", (), {"content": content})})
        ]
        self.usage = type(
            "Usage",
            (),
            {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
        )


def _patch_completion(provider: OpenAIProvider, monkeypatch, result):
    """Patch provider seam to return a fake completion or raise an SDK error."""
    seen = {}

    def fake_create_chat_completion(**kwargs):
        seen.update(kwargs)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(
        provider, "_create_chat_completion", fake_create_chat_completion
    )
    return seen


def test_complete_returns_text_and_records_usage(monkeypatch):
    provider = OpenAIProvider()
    seen = _patch_completion(
        provider, monkeypatch, FakeCompletion('  {"sql": "SELECT 1"}  ')
    )

    text = provider.complete(system="sys", user="usr")

    assert text == '{"sql": "SELECT 1"}'
    assert seen["temperature"] == 0.2
    assert seen["response_format"] == {"type": "json_object"}
    assert seen["messages"][0] == {"role": "system", "content": "sys"}
    assert seen["messages"][1] == {"role": "user", "content": "usr"}

    usage = provider.get_last_usage()
    assert usage["prompt_tokens"] == 5
    assert usage["completion_tokens"] == 7
    assert isinstance(usage["cost_usd"], float)


def test_json_mode_off_omits_response_format(monkeypatch):
    provider = OpenAIProvider()
    seen = _patch_completion(provider, monkeypatch, FakeCompletion("{}"))
    provider.complete(system="s", user="u", json_mode=False)
    assert "response_format" not in seen


def test_sdk_retries_are_disabled():
    provider = OpenAIProvider(timeout=7)
    assert provider.client.max_retries == 0
    assert provider.timeout == 7


def test_missing_api_key_is_llm_disabled(monkeypatch):
    for name in ("OPENAI_API_KEY", "PROXY_API_KEY", "PROXY_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ConfigurationError) as ei:
        OpenAIProvider()
    assert ei.value.code == ErrorCode.LLM_DISABLED
    assert ei.value.http_status == 500


def test_timeout_maps_to_llm_timeout(monkeypatch):
    provider = OpenAIProvider()
    _patch_completion(provider, monkeypatch, openai.APITimeoutError(request=_REQUEST))
    with pytest.raises(UpstreamTransportError) as ei:
        provider.complete(system="s", user="u")
    assert ei.value.code == ErrorCode.LLM_TIMEOUT
    assert ei.value.retryable


def test_http_status_maps_to_llm_http_error(monkeypatch):
    provider = OpenAIProvider()
    response = httpx.Response(503, request=_REQUEST, text="upstream overloaded")
    err = openai.APIStatusError("overloaded", response=response, body=None)
    _patch_completion(provider, monkeypatch, err)

    with pytest.raises(UpstreamTransportError) as ei:
        provider.complete(system="s", user="u")
    assert ei.value.code == ErrorCode.LLM_HTTP_ERROR
    assert ei.value.status == 503
    assert ei.value.detail == "upstream overloaded"
    assert ei.value.http_status == 502


def test_connection_error_maps_to_llm_unreachable(monkeypatch):
    provider = OpenAIProvider()
    _patch_completion(
        provider, monkeypatch, openai.APIConnectionError(request=_REQUEST)
    )
    with pytest.raises(UpstreamTransportError) as ei:
        provider.complete(system="s", user="u")
    assert ei.value.code == ErrorCode.LLM_UNREACHABLE

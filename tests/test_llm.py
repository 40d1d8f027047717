import time

import pytest

from medlens import llm as llm_module
from medlens.errors import ConfigurationError, ExternalServiceError
from medlens.llm import CrewAICompletionClient, parse_json_payload


class StubLLM:
    def __init__(self, reply=None, delay=0.0, error=None):
        self.reply = reply
        self.delay = delay
        self.error = error

    def call(self, prompt):
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


def _client(monkeypatch, stub, timeout=1.0):
    monkeypatch.setattr(llm_module, "_shared_llm", lambda *args: stub)
    return CrewAICompletionClient("gemini/gemini-1.5-flash", "key", timeout=timeout)


def test_parse_json_payload_strips_fences():
    assert parse_json_payload('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_payload('  {"a": [1, 2]} ') == {"a": [1, 2]}
    assert parse_json_payload("null") is None
    with pytest.raises(ValueError):
        parse_json_payload("not json")


async def test_missing_key_is_a_configuration_error():
    client = CrewAICompletionClient("gemini/gemini-1.5-flash", None)
    assert client.configured is False
    with pytest.raises(ConfigurationError):
        await client.complete("hello")


async def test_completion_text_is_returned(monkeypatch):
    client = _client(monkeypatch, StubLLM(reply='{"summary": "ok"}'))
    assert client.configured is True
    assert await client.complete("hello") == '{"summary": "ok"}'


async def test_blank_completion_is_none(monkeypatch):
    assert await _client(monkeypatch, StubLLM(reply="  ")).complete("hello") is None


async def test_provider_error_is_wrapped(monkeypatch):
    client = _client(monkeypatch, StubLLM(error=RuntimeError("quota exceeded")))
    with pytest.raises(ExternalServiceError, match="quota exceeded"):
        await client.complete("hello")


async def test_slow_provider_times_out(monkeypatch):
    client = _client(monkeypatch, StubLLM(reply="late", delay=0.3), timeout=0.05)
    with pytest.raises(ExternalServiceError, match="timed out"):
        await client.complete("hello")

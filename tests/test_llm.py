"""Tests for LLM providers."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from topicfeed.llm import clear_provider_cache, get_provider_for_task
from topicfeed.llm.anthropic_provider import AnthropicProvider
from topicfeed.llm.openai_compat import OpenAICompatibleProvider
from topicfeed.llm.usage import estimate_cost, get_cost_tracker, track_costs


@pytest.fixture
def openai_provider():
    return OpenAICompatibleProvider(
        api_key="test-key",
        base_url="http://localhost:9999",
        default_model="test-model",
    )


@pytest.fixture(autouse=True)
def _fresh_provider_cache():
    clear_provider_cache()
    yield
    clear_provider_cache()


def _mock_openai_response(content="test response", model="test-model"):
    return {
        "choices": [{"message": {"content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20},
    }


def _mock_client(mock_client_cls, content="test response"):
    mock_resp = MagicMock()
    mock_resp.json.return_value = _mock_openai_response(content)
    mock_resp.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.post.return_value = mock_resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


@pytest.mark.asyncio
@patch("topicfeed.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_complete(mock_client_cls, openai_provider):
    """OpenAI-compatible provider makes correct API call."""
    mock_client = _mock_client(mock_client_cls, "hello world")

    with patch.object(openai_provider, "_track_cost"):
        response = await openai_provider.complete("test prompt", system="sys")

    assert response.text == "hello world"
    assert response.input_tokens == 10
    assert response.output_tokens == 20

    call_args = mock_client.post.call_args
    assert call_args.args[0] == "http://localhost:9999/chat/completions"
    payload = call_args.kwargs["json"]
    assert payload["model"] == "test-model"
    assert payload["temperature"] == 0.6
    assert payload["max_tokens"] == 400
    assert len(payload["messages"]) == 2
    assert payload["messages"][0]["role"] == "system"
    assert payload["messages"][1]["content"] == "test prompt"
    assert "response_format" not in payload
    assert call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
@patch("topicfeed.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_no_system(mock_client_cls, openai_provider):
    """System message is omitted when empty."""
    mock_client = _mock_client(mock_client_cls)

    with patch.object(openai_provider, "_track_cost"):
        await openai_provider.complete("prompt only")

    payload = mock_client.post.call_args.kwargs["json"]
    assert len(payload["messages"]) == 1
    assert payload["messages"][0]["role"] == "user"


@pytest.mark.asyncio
@patch("topicfeed.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_json_mode(mock_client_cls):
    provider = OpenAICompatibleProvider(
        api_key="", base_url="", default_model="deepseek-chat", json_mode=True,
    )
    mock_client = _mock_client(mock_client_cls, '{"topics": []}')

    await provider.complete("prompt")

    call_args = mock_client.post.call_args
    assert call_args.args[0] == "https://api.deepseek.com/chat/completions"
    assert call_args.kwargs["json"]["response_format"] == {"type": "json_object"}
    assert "Authorization" not in call_args.kwargs["headers"]


@pytest.mark.asyncio
@patch("topicfeed.llm.openai_compat.httpx.AsyncClient")
async def test_usage_recorded_in_active_tracker(mock_client_cls):
    provider = OpenAICompatibleProvider(
        api_key="k", base_url="http://localhost:9999", default_model="deepseek-chat",
    )
    _mock_client(mock_client_cls)

    with track_costs() as tracker:
        await provider.complete("one")
        await provider.complete("two")

    assert tracker.calls == 2
    assert tracker.total_tokens == 60
    assert tracker.total_cost_usd == pytest.approx(2 * estimate_cost(10, 20, "deepseek-chat"))
    assert get_cost_tracker() is None


def _messages_transport(seen: list[dict]) -> httpx.MockTransport:
    """Serves a Messages API reply and records each request body."""

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={
            "id": f"msg_{len(seen)}",
            "type": "message",
            "role": "assistant",
            "model": "claude-haiku-4-5-20251001",
            "content": [{"type": "text", "text": '[{"title": "AI", "confidence": 0.8}]'}],
            "stop_reason": "end_turn",
            "stop_sequence": None,
            "usage": {"input_tokens": 50, "output_tokens": 7},
        })

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_anthropic_complete():
    seen: list[dict] = []
    provider = AnthropicProvider(
        api_key="k", base_url="", default_model="claude-haiku-4-5-20251001",
        max_retries=0, transport=_messages_transport(seen),
    )

    response = await provider.complete("prompt", system="sys", max_tokens=100)

    assert response.text == '[{"title": "AI", "confidence": 0.8}]'
    assert response.input_tokens == 50
    assert response.output_tokens == 7
    assert seen[0]["system"] == "sys"
    assert seen[0]["max_tokens"] == 100
    assert seen[0]["temperature"] == 0.6
    assert seen[0]["model"] == "claude-haiku-4-5-20251001"
    assert seen[0]["messages"] == [{"role": "user", "content": "prompt"}]


def test_anthropic_provider_survives_separate_event_loops():
    """A cached provider keeps working when each pipeline run has its own loop."""
    seen: list[dict] = []
    provider = AnthropicProvider(
        api_key="k", base_url="", default_model="claude-haiku-4-5-20251001",
        max_retries=0, transport=_messages_transport(seen),
    )

    first = asyncio.run(provider.complete("run one"))
    second = asyncio.run(provider.complete("run two"))

    assert first.text == second.text == '[{"title": "AI", "confidence": 0.8}]'
    assert [body["messages"][0]["content"] for body in seen] == ["run one", "run two"]


def test_anthropic_json_mode_hint():
    seen: list[dict] = []
    provider = AnthropicProvider(
        api_key="k", base_url="", default_model="claude-haiku-4-5-20251001",
        max_retries=0, json_mode=True, transport=_messages_transport(seen),
    )

    asyncio.run(provider.complete("prompt", system="Classify."))

    assert seen[0]["system"] == "Classify.\n\nReply with JSON only."


def test_provider_routing_and_cache(sample_config):
    provider = get_provider_for_task(sample_config, "classify")
    assert isinstance(provider, OpenAICompatibleProvider)
    assert provider.active_model == "test-model"
    assert provider.max_retries == 0
    assert get_provider_for_task(sample_config, "classify") is provider


def test_unknown_provider_type():
    config = {
        "llm": {
            "providers": {"odd": {"type": "carrier-pigeon"}},
            "tasks": {"classify": {"provider": "odd"}},
        },
    }
    with pytest.raises(ValueError, match="Unknown LLM provider type"):
        get_provider_for_task(config, "classify")

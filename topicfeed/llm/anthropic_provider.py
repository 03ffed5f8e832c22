"""Anthropic Messages API provider."""

from __future__ import annotations

import anthropic
import httpx

from topicfeed.llm import register_provider
from topicfeed.llm.base import BaseLLMProvider, LLMResponse

# Messages API has no JSON response format; appended to the system prompt instead.
JSON_ONLY_HINT = "Reply with JSON only."


@register_provider("anthropic")
class AnthropicProvider(BaseLLMProvider):
    """Claude models through the async SDK client (SDK retries disabled).

    A client is opened per request so the provider can be reused across
    event loops (one ``asyncio.run`` per pipeline run).
    """

    def __init__(self, *args, transport: httpx.AsyncBaseTransport | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.transport = transport

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def _client(self) -> anthropic.AsyncAnthropic:
        http_client = None
        if self.transport is not None:
            http_client = httpx.AsyncClient(transport=self.transport, timeout=self.timeout)
        return anthropic.AsyncAnthropic(
            api_key=self.api_key,
            base_url=self.base_url or None,
            timeout=self.timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def _request(
        self,
        prompt: str,
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        if self.json_mode:
            system = f"{system}\n\n{JSON_ONLY_HINT}".strip()

        params = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            params["system"] = system

        async with self._client() as client:
            message = await client.messages.create(**params)

        return LLMResponse(
            text="".join(
                block.text for block in message.content
                if getattr(block, "type", "") == "text"
            ),
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
            model=model,
        )

"""OpenAI-compatible chat completions (DeepSeek, OpenRouter, Ollama, vLLM)."""

from __future__ import annotations

import logging

import httpx

from topicfeed.llm import register_provider
from topicfeed.llm.base import BaseLLMProvider, LLMResponse

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com"


@register_provider("openai_compatible")
class OpenAICompatibleProvider(BaseLLMProvider):
    """Any API exposing ``POST {base_url}/chat/completions``."""

    @property
    def provider_name(self) -> str:
        return "openai_compatible"

    @property
    def endpoint(self) -> str:
        return f"{(self.base_url or DEFAULT_BASE_URL).rstrip('/')}/chat/completions"

    def build_payload(
        self, prompt: str, system: str, model: str, temperature: float, max_tokens: int,
    ) -> dict:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def _request(
        self,
        prompt: str,
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                self.endpoint,
                json=self.build_payload(prompt, system, model, temperature, max_tokens),
                headers=headers,
            )
            resp.raise_for_status()
            data = resp.json()

        choices = data.get("choices") or []
        if not choices:
            raise ValueError(f"{model} returned no choices")
        usage = data.get("usage") or {}
        return LLMResponse(
            text=choices[0].get("message", {}).get("content") or "",
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            model=model,
        )

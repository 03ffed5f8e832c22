"""Abstract base class for LLM providers."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from topicfeed.llm.usage import get_cost_tracker
from topicfeed.retry import retry_async

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Text and token usage of one completion."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class BaseLLMProvider(ABC):
    """A chat-completion backend.

    Subclasses implement ``_request`` for a single attempt; ``complete``
    wraps it with model resolution, retries and cost tracking.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        default_model: str,
        max_retries: int = 3,
        timeout: int = 120,
        json_mode: bool = False,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model
        self.active_model = default_model
        self.max_retries = max_retries
        self.timeout = timeout
        self.json_mode = json_mode

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name."""
        ...

    @abstractmethod
    async def _request(
        self,
        prompt: str,
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Send one completion request, raising on any failure."""
        ...

    async def complete(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        temperature: float = 0.6,
        max_tokens: int = 400,
    ) -> LLMResponse:
        """Completion with transient-error retries; usage goes to the run tracker."""
        model = model or self.active_model or self.default_model
        started = time.monotonic()
        response = await retry_async(
            self._request, prompt, system, model, temperature, max_tokens,
            max_retries=self.max_retries,
        )
        logger.debug(
            "%s/%s: %d tokens in %.2fs",
            self.provider_name, model, response.total_tokens, time.monotonic() - started,
        )
        self._track_cost(response)
        return response

    def _track_cost(self, response: LLMResponse) -> None:
        tracker = get_cost_tracker()
        if tracker and response.total_tokens:
            tracker.track(response.input_tokens, response.output_tokens, response.model)

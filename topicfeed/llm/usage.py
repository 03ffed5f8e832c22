"""Token usage and cost accounting for a pipeline run."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager

PRICING_PER_MILLION = {
    "deepseek-chat": (0.27, 1.10),
    "gpt-4o-mini": (0.15, 0.60),
    "claude-haiku-4-5-20251001": (0.80, 4.0),
    "claude-sonnet-4-5-20250514": (3.0, 15.0),
}


def estimate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    """Rough cost estimate based on known pricing (per 1M tokens)."""
    input_rate, output_rate = PRICING_PER_MILLION.get(model, (1.0, 2.0))
    return (input_tokens * input_rate + output_tokens * output_rate) / 1_000_000


class CostTracker:
    """Accumulate LLM token usage and cost across a pipeline run."""

    def __init__(self):
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_cost_usd = 0.0
        self.calls = 0

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def track(self, input_tokens: int, output_tokens: int, model: str):
        self.calls += 1
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.total_cost_usd += estimate_cost(input_tokens, output_tokens, model)


_current_tracker: contextvars.ContextVar[CostTracker | None] = contextvars.ContextVar(
    "_current_tracker", default=None,
)


def get_cost_tracker() -> CostTracker | None:
    return _current_tracker.get()


@contextmanager
def track_costs():
    """Install a fresh CostTracker for the enclosed block."""
    tracker = CostTracker()
    token = _current_tracker.set(tracker)
    try:
        yield tracker
    finally:
        _current_tracker.reset(token)

"""LLM providers, looked up by type and routed per task (``llm.tasks.<task>``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from topicfeed.llm.base import BaseLLMProvider

PROVIDERS: dict[str, type[BaseLLMProvider]] = {}

# One instance per configured provider entry, shared across tasks.
_instances: dict[str, BaseLLMProvider] = {}


def register_provider(name: str):
    """Decorator to register an LLM provider."""

    def decorator(cls):
        PROVIDERS[name] = cls
        return cls

    return decorator


def _build_provider(task_cfg: dict) -> BaseLLMProvider:
    try:
        cls = PROVIDERS[task_cfg["provider_type"]]
    except KeyError:
        raise ValueError(f"Unknown LLM provider type: {task_cfg['provider_type']}") from None
    return cls(
        api_key=task_cfg["api_key"],
        base_url=task_cfg["base_url"],
        default_model=task_cfg["model"],
        max_retries=task_cfg["max_retries"],
        timeout=task_cfg["timeout"],
        json_mode=task_cfg["json_mode"],
    )


def get_provider_for_task(config: dict, task: str) -> BaseLLMProvider:
    """Provider configured for ``task``, with the task's model selected."""
    from topicfeed.config import get_llm_task_config

    task_cfg = get_llm_task_config(config, task)
    name = task_cfg["provider_name"]
    if name not in _instances:
        _instances[name] = _build_provider(task_cfg)

    provider = _instances[name]
    provider.active_model = task_cfg["model"]
    return provider


def clear_provider_cache() -> None:
    _instances.clear()


from topicfeed.llm.anthropic_provider import AnthropicProvider  # noqa: E402, F401
from topicfeed.llm.openai_compat import OpenAICompatibleProvider  # noqa: E402, F401

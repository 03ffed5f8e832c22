"""Relevance classifier registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from topicfeed.classify.base import BaseClassifier

CLASSIFIERS: dict[str, type[BaseClassifier]] = {}


def register_classifier(name: str):
    """Decorator to register a classifier implementation."""

    def decorator(cls):
        CLASSIFIERS[name] = cls
        return cls

    return decorator


def get_classifier(config: dict, top_n: int = 5, interval: float = 0.5) -> BaseClassifier:
    """Build the classifier named by ``classifier.type`` (default ``llm``)."""
    name = config.get("classifier", {}).get("type", "llm")
    if name not in CLASSIFIERS:
        raise ValueError(f"Unknown classifier type: {name}")
    return CLASSIFIERS[name](config, top_n=top_n, interval=interval)


from topicfeed.classify.llm import LLMClassifier  # noqa: E402, F401

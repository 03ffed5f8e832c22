"""LLM-backed relevance classifier."""

from __future__ import annotations

import logging
from collections import OrderedDict

from topicfeed.classify import register_classifier
from topicfeed.classify.base import BaseClassifier, clamp_confidence, match_topic
from topicfeed.classify.parsing import extract_json_list
from topicfeed.llm import get_provider_for_task
from topicfeed.llm.prompts import CLASSIFY_ARTICLE, SYSTEM_CLASSIFIER
from topicfeed.models import EnrichedArticle, Topic, TopicScore

logger = logging.getLogger(__name__)

BODY_CHARS = 2000


def build_topic_context(topics: list[Topic]) -> str:
    """Topics grouped under their module, one block per module."""
    by_module: OrderedDict[str, list[str]] = OrderedDict()
    for topic in topics:
        by_module.setdefault(topic.module_title or "Unknown", []).append(topic.title)
    return "\n\n".join(
        f"Module: {module}\n  Topics: " + ", ".join(f'"{t}"' for t in titles)
        for module, titles in by_module.items()
    )


def build_prompt(article: EnrichedArticle, topics: list[Topic], top_n: int) -> str:
    body = article.body_text[:BODY_CHARS] if article.body_text else article.summary
    return CLASSIFY_ARTICLE.format(
        top_n=top_n,
        title=article.title,
        summary=article.summary,
        body_chars=BODY_CHARS,
        body=body,
        topic_context=build_topic_context(topics),
    )


def parse_scores(text: str, topics: list[Topic], top_n: int) -> list[TopicScore]:
    """Map the model's suggestions back onto known topics."""
    items = extract_json_list(text)
    if items is None:
        logger.warning("Could not parse classifier response: %.200s", text)
        return []

    scores: list[TopicScore] = []
    seen: set[int] = set()
    for item in items:
        title = item.get("title")
        if not isinstance(title, str):
            continue
        topic = match_topic(title, topics)
        if topic is None or topic.topic_id in seen:
            continue
        confidence = clamp_confidence(item.get("confidence"))
        if confidence is None:
            continue
        seen.add(topic.topic_id)
        scores.append(TopicScore(
            topic_id=topic.topic_id,
            topic_title=topic.title,
            confidence=confidence,
            reasoning=str(item.get("reasoning") or ""),
        ))

    scores.sort(key=lambda s: s.confidence, reverse=True)
    return scores[:top_n]


@register_classifier("llm")
class LLMClassifier(BaseClassifier):
    """One completion request per article, topic list included in the prompt."""

    task = "classify"

    @property
    def name(self) -> str:
        return "llm"

    async def classify(self, article: EnrichedArticle, topics: list[Topic]) -> list[TopicScore]:
        if not topics or not article.body_text:
            return []

        prompt = build_prompt(article, topics, self.top_n)
        try:
            provider = get_provider_for_task(self.config, self.task)
            response = await provider.complete(
                prompt, system=SYSTEM_CLASSIFIER, temperature=0.6, max_tokens=400,
            )
        except Exception as exc:
            logger.warning("Classification request failed for %s: %s", article.url, exc)
            return []

        return parse_scores(response.text, topics, self.top_n)

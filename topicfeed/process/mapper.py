"""Fold per-article topic scores into the per-topic mapping artifact."""

from __future__ import annotations

import logging

from topicfeed.models import (
    EnrichedArticle,
    MappedArticle,
    Topic,
    TopicArticleMapping,
    TopicScore,
)

logger = logging.getLogger(__name__)


def aggregate(
    scored: list[tuple[EnrichedArticle, list[TopicScore]]],
    topics: list[Topic],
    threshold: float = 0.5,
    max_per_topic: int = 3,
) -> list[TopicArticleMapping]:
    """Group accepted (article, score) pairs by topic.

    Pairs below ``threshold`` are dropped, a URL appears at most once per
    topic, and each topic keeps at most ``max_per_topic`` articles sorted by
    confidence descending. Topics with nothing accepted are omitted; the rest
    are returned in order of first acceptance.
    """
    topics_by_id = {t.topic_id: t for t in topics}
    mappings: dict[int, TopicArticleMapping] = {}

    for article, scores in scored:
        for score in scores:
            if score.confidence < threshold:
                continue
            topic = topics_by_id.get(score.topic_id)
            if topic is None:
                logger.debug("Score for unknown topic %s ignored", score.topic_id)
                continue

            entry = mappings.get(topic.topic_id)
            if entry is None:
                entry = TopicArticleMapping(
                    topic_id=topic.topic_id,
                    topic_title=topic.title,
                    module_id=topic.module_id,
                    module_title=topic.module_title,
                )
                mappings[topic.topic_id] = entry

            if any(a.url == article.url for a in entry.articles):
                continue
            if len(entry.articles) >= max_per_topic:
                continue
            entry.articles.append(
                MappedArticle(
                    title=article.title,
                    url=article.url,
                    source=article.source,
                    published_at=article.published_at,
                    summary=article.summary,
                    confidence=score.confidence,
                    reasoning=score.reasoning,
                )
            )

    for entry in mappings.values():
        entry.articles.sort(key=lambda a: a.confidence, reverse=True)
        del entry.articles[max_per_topic:]

    result = list(mappings.values())
    logger.info("Mapping complete: %d topics with articles", len(result))
    return result

"""Classifier interface and the sequential classification driver."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from topicfeed.models import EnrichedArticle, Topic, TopicScore
from topicfeed.ratelimit import RateLimiter

logger = logging.getLogger(__name__)


class BaseClassifier(ABC):
    """Scores one article against the full topic list."""

    def __init__(self, config: dict, top_n: int = 5, interval: float = 0.5):
        self.config = config
        self.top_n = top_n
        self.limiter = RateLimiter(interval)

    @abstractmethod
    async def classify(self, article: EnrichedArticle, topics: list[Topic]) -> list[TopicScore]:
        """Return up to ``top_n`` scores, best first. Never raises for item errors."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        ...


def match_topic(title: str, topics: list[Topic]) -> Topic | None:
    """Case-insensitive exact title lookup."""
    wanted = title.strip().lower()
    for topic in topics:
        if topic.title.strip().lower() == wanted:
            return topic
    return None


def clamp_confidence(value) -> float | None:
    """Coerce to float and clamp into [0, 1]; None when not numeric."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return min(max(number, 0.0), 1.0)


async def classify_articles(
    classifier: BaseClassifier,
    articles: list[EnrichedArticle],
    topics: list[Topic],
) -> list[tuple[EnrichedArticle, list[TopicScore]]]:
    """Classify articles one at a time, spaced by the classifier's limiter.

    Articles without body text are skipped. A classifier that raises for one
    article contributes no scores for it.
    """
    results = []
    for i, article in enumerate(articles, 1):
        if not article.body_text:
            continue
        await classifier.limiter.acquire()
        try:
            scores = await classifier.classify(article, topics)
        except Exception:
            logger.exception("Classifier '%s' failed for %s", classifier.name, article.url)
            scores = []

        logger.info(
            "[Article %d/%d] %s -> %s",
            i, len(articles), article.title[:80],
            ", ".join(f"{s.topic_title} ({s.confidence:.0%})" for s in scores) or "no topics",
        )
        results.append((article, scores))
    return results

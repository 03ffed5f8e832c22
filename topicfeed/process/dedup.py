"""Deduplication by (url, title) identity, newest first."""

from __future__ import annotations

import logging

from topicfeed.models import CandidateArticle

logger = logging.getLogger(__name__)


def dedupe_articles(articles: list[CandidateArticle]) -> list[CandidateArticle]:
    """Sort by publish time descending, keep the first of each (url, title)."""
    ordered = sorted(articles, key=lambda a: a.published_at, reverse=True)

    seen: set[tuple[str, str]] = set()
    unique = []
    for article in ordered:
        if article.key in seen:
            continue
        seen.add(article.key)
        unique.append(article)

    removed = len(articles) - len(unique)
    if removed:
        logger.info("Dedup removed %d duplicate articles", removed)
    return unique

"""Include/exclude keyword filtering on title + summary."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from topicfeed.models import CandidateArticle

logger = logging.getLogger(__name__)


def is_relevant(text: str, include: Iterable[str], exclude: Iterable[str]) -> bool:
    """Case-insensitive substring match; any exclude keyword rejects outright."""
    blob = text.lower()
    if any(kw.lower() in blob for kw in exclude):
        return False
    return any(kw.lower() in blob for kw in include)


def filter_by_keywords(
    articles: list[CandidateArticle],
    include: Iterable[str],
    exclude: Iterable[str],
) -> list[CandidateArticle]:
    include = [kw for kw in include if kw]
    exclude = [kw for kw in exclude if kw]
    kept = [
        a for a in articles
        if is_relevant(f"{a.title} {a.summary}", include, exclude)
    ]
    logger.info("After keyword filtering: %d/%d articles", len(kept), len(articles))
    return kept

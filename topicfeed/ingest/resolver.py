"""Merge the default feed list with tenants' custom feeds."""

from __future__ import annotations

import logging

from topicfeed.models import FeedSource
from topicfeed.store.base import FeedStore

logger = logging.getLogger(__name__)


async def resolve_feeds(
    default_feeds: list[str], feed_store: FeedStore | None = None,
) -> list[FeedSource]:
    """Default feeds first, then every active custom feed.

    Duplicates are left in place. If the store is unreachable the run
    continues on the default list alone.
    """
    sources = [FeedSource(url=url, origin="default") for url in default_feeds]
    if feed_store is None:
        return sources

    try:
        custom_urls = await feed_store.list_active_feed_urls()
    except Exception:
        logger.warning(
            "Failed to load custom feeds, using %d default feeds",
            len(sources), exc_info=True,
        )
        return sources

    sources.extend(FeedSource(url=url, origin="custom") for url in custom_urls)
    logger.info(
        "Loaded %d custom feeds + %d default feeds = %d total",
        len(custom_urls), len(default_feeds), len(sources),
    )
    return sources

"""RSS/Atom feed fetching and entry parsing."""

from __future__ import annotations

import asyncio
import calendar
import logging
from datetime import datetime, timezone

import feedparser
import httpx

from topicfeed.models import CandidateArticle, FeedSource

logger = logging.getLogger(__name__)

USER_AGENT = "topicfeed/1.0 (RSS reader)"

# Explicit publish date, then generic date, then last-updated.
DATE_FIELDS = ("published_parsed", "created_parsed", "updated_parsed")


def entry_published_at(entry) -> datetime | None:
    """First usable timestamp from a feed entry, as an aware UTC datetime."""
    for field in DATE_FIELDS:
        parsed = entry.get(field)
        if not parsed:
            continue
        try:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            continue
    return None


def parse_entries(feed, feed_url: str, since: datetime) -> list[CandidateArticle]:
    """Turn parsed feed entries into candidates published at or after ``since``."""
    feed_meta = getattr(feed, "feed", None) or {}
    source = feed_meta.get("title") or feed_url

    articles = []
    for entry in feed.entries:
        published_at = entry_published_at(entry)
        if published_at is None or published_at < since:
            continue

        articles.append(
            CandidateArticle(
                title=(entry.get("title") or "").strip(),
                url=(entry.get("link") or "").strip(),
                published_at=published_at,
                summary=entry.get("summary") or entry.get("description") or "",
                source=source,
            )
        )
    return articles


async def _download(url: str, timeout: float) -> bytes:
    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    ) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.content


async def fetch_feed(url: str, since: datetime, timeout: float) -> list[CandidateArticle]:
    """Fetch and parse one feed. Any failure yields an empty list."""
    try:
        body = await asyncio.wait_for(_download(url, timeout), timeout=timeout)
        feed = feedparser.parse(body)
        if getattr(feed, "bozo", False) and not feed.entries:
            logger.warning(
                "RSS parse error for %s: %s", url, getattr(feed, "bozo_exception", "malformed feed"),
            )
            return []
        return parse_entries(feed, url, since)
    except asyncio.TimeoutError:
        logger.warning("Timed out fetching RSS from %s after %.1fs", url, timeout)
    except httpx.HTTPError as exc:
        logger.warning("Failed to fetch RSS from %s: %s", url, exc)
    except Exception:
        logger.exception("Unexpected error parsing RSS from %s", url)
    return []


async def fetch_all_feeds(
    sources: list[FeedSource], since: datetime, timeout: float,
) -> list[CandidateArticle]:
    """Fetch every feed concurrently and concatenate the results in source order."""
    logger.info("Fetching %d RSS feeds since %s", len(sources), since.isoformat())

    results = await asyncio.gather(*[
        fetch_feed(source.url, since, timeout) for source in sources
    ])

    all_articles: list[CandidateArticle] = []
    for source, articles in zip(sources, results):
        logger.info("Fetched %d articles from %s", len(articles), source.url)
        all_articles.extend(articles)

    logger.info("Total articles fetched: %d", len(all_articles))
    return all_articles

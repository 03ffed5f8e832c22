"""Tests for RSS fetching and entry parsing."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest

from topicfeed.ingest.rss import entry_published_at, fetch_all_feeds, fetch_feed, parse_entries
from topicfeed.models import FeedSource

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
SINCE = NOW - timedelta(days=7)


class FakeEntry(dict):
    """Dict subclass that also supports attribute access (like feedparser)."""

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError:
            raise AttributeError(key)


def struct_time(dt: datetime):
    """feedparser-style UTC struct_time for a datetime."""
    return dt.astimezone(timezone.utc).timetuple()


def _rss(title: str, items: list[tuple[str, str, int]]) -> bytes:
    """Minimal RSS 2.0 document; items are (title, link, days_ago)."""
    body = "".join(
        f"<item><title>{t}</title><link>{link}</link>"
        f"<description>About {t}</description>"
        f"<pubDate>{(NOW - timedelta(days=d)).strftime('%a, %d %b %Y %H:%M:%S +0000')}</pubDate>"
        f"</item>"
        for t, link, d in items
    )
    return (
        f'<?xml version="1.0"?><rss version="2.0"><channel><title>{title}</title>'
        f"{body}</channel></rss>"
    ).encode()


def test_published_preferred_over_updated():
    entry = FakeEntry(
        published_parsed=struct_time(NOW - timedelta(days=2)),
        updated_parsed=struct_time(NOW),
    )
    assert entry_published_at(entry) == NOW - timedelta(days=2)


def test_falls_back_to_created_then_updated():
    created = FakeEntry(
        created_parsed=struct_time(NOW - timedelta(days=3)),
        updated_parsed=struct_time(NOW),
    )
    assert entry_published_at(created) == NOW - timedelta(days=3)

    updated_only = FakeEntry(updated_parsed=struct_time(NOW - timedelta(hours=5)))
    assert entry_published_at(updated_only) == NOW - timedelta(hours=5)


def test_entry_without_date():
    assert entry_published_at(FakeEntry(title="undated")) is None


def test_parse_entries_applies_window():
    feed = SimpleNamespace(
        feed={"title": "Tech Wire"},
        entries=[
            FakeEntry(
                title=" Fresh ", link="https://x.com/fresh", summary="new",
                published_parsed=struct_time(NOW - timedelta(days=1)),
            ),
            FakeEntry(
                title="Stale", link="https://x.com/stale",
                published_parsed=struct_time(NOW - timedelta(days=30)),
            ),
            FakeEntry(title="Undated", link="https://x.com/undated"),
            FakeEntry(
                title="Boundary", link="https://x.com/boundary",
                published_parsed=struct_time(SINCE),
            ),
        ],
    )
    articles = parse_entries(feed, "https://x.com/rss", SINCE)

    assert [a.title for a in articles] == ["Fresh", "Boundary"]
    assert articles[0].source == "Tech Wire"
    assert articles[0].summary == "new"


def test_parse_entries_source_falls_back_to_url():
    feed = SimpleNamespace(
        feed={},
        entries=[
            FakeEntry(
                title="T", link="https://x.com/t", description="desc",
                published_parsed=struct_time(NOW),
            ),
        ],
    )
    articles = parse_entries(feed, "https://x.com/rss", SINCE)
    assert articles[0].source == "https://x.com/rss"
    assert articles[0].summary == "desc"


@pytest.mark.asyncio
async def test_fetch_feed_parses_document():
    doc = _rss("Tech Wire", [("Cloud outage", "https://x.com/1", 1), ("Old news", "https://x.com/2", 40)])
    with patch("topicfeed.ingest.rss._download", return_value=doc):
        articles = await fetch_feed("https://x.com/rss", SINCE, timeout=5)

    assert len(articles) == 1
    assert articles[0].title == "Cloud outage"
    assert articles[0].url == "https://x.com/1"
    assert articles[0].source == "Tech Wire"


@pytest.mark.asyncio
async def test_fetch_feed_http_error_returns_empty():
    request = httpx.Request("GET", "https://x.com/rss")
    error = httpx.HTTPStatusError(
        "not found", request=request, response=httpx.Response(404, request=request),
    )
    with patch("topicfeed.ingest.rss._download", side_effect=error):
        assert await fetch_feed("https://x.com/rss", SINCE, timeout=5) == []


@pytest.mark.asyncio
async def test_fetch_feed_malformed_returns_empty():
    with patch("topicfeed.ingest.rss._download", return_value=b"<html><body>nope"):
        assert await fetch_feed("https://x.com/rss", SINCE, timeout=5) == []


@pytest.mark.asyncio
async def test_one_slow_feed_does_not_block_others():
    """A feed that times out contributes nothing; the rest are concatenated in order."""
    docs = {
        "https://a.com/rss": _rss("A", [("A1", "https://a.com/1", 1), ("A2", "https://a.com/2", 2)]),
        "https://c.com/rss": _rss("C", [("C1", "https://c.com/1", 1)]),
    }

    async def fake_download(url, timeout):
        if url == "https://b.com/rss":
            await asyncio.sleep(5)
        return docs[url]

    sources = [FeedSource(url=u) for u in ("https://a.com/rss", "https://b.com/rss", "https://c.com/rss")]
    with patch("topicfeed.ingest.rss._download", side_effect=fake_download):
        articles = await fetch_all_feeds(sources, SINCE, timeout=0.05)

    assert [a.title for a in articles] == ["A1", "A2", "C1"]


@pytest.mark.asyncio
async def test_fetch_all_feeds_empty():
    assert await fetch_all_feeds([], SINCE, timeout=1) == []

"""Tests for article scraping and boilerplate stripping."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from topicfeed.ingest.scraper import extract_text, scrape_article, scrape_articles, truncate
from topicfeed.models import CandidateArticle

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

PAGE = b"""
<html>
  <head><style>p { color: red }</style><script>var x = 1;</script></head>
  <body>
    <header><p>Site header</p></header>
    <nav><ul><li>Home</li><li>World</li></ul></nav>
    <article>
      <p>First   paragraph of the story.</p>
      <div class="ads"><p>Buy now</p></div>
      <ul><li>Key point</li></ul>
      <p>Second paragraph.</p>
    </article>
    <aside><p>Related links</p></aside>
    <div class="sidebar widget"><p>Trending</p></div>
    <footer><p>Copyright</p></footer>
  </body>
</html>
"""


def _response(content: bytes, content_type: str = "text/html; charset=utf-8") -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": content_type},
        content=content,
        request=httpx.Request("GET", "https://x.com/story"),
    )


def test_extract_text_strips_boilerplate():
    text = extract_text(PAGE)
    assert text == "First paragraph of the story. Key point Second paragraph."


def test_truncate():
    assert truncate("abcdef", 10) == "abcdef"
    assert truncate("abcdef", 3) == "abc..."


@pytest.mark.asyncio
async def test_scrape_article_returns_body():
    with patch("topicfeed.ingest.scraper._fetch_html", AsyncMock(return_value=_response(PAGE))):
        text = await scrape_article("https://x.com/story", max_length=20)
    assert text == "First paragraph of t..."


@pytest.mark.asyncio
async def test_scrape_article_non_html():
    resp = _response(b"%PDF-1.4", content_type="application/pdf")
    with patch("topicfeed.ingest.scraper._fetch_html", AsyncMock(return_value=resp)):
        assert await scrape_article("https://x.com/report.pdf") == ""


@pytest.mark.asyncio
async def test_scrape_article_http_error():
    request = httpx.Request("GET", "https://x.com/gone")
    error = httpx.HTTPStatusError(
        "gone", request=request, response=httpx.Response(404, request=request),
    )
    with patch("topicfeed.ingest.scraper._fetch_html", AsyncMock(side_effect=error)):
        assert await scrape_article("https://x.com/gone") == ""


@pytest.mark.asyncio
async def test_scrape_article_falls_back_to_trafilatura():
    page = b"<html><body><div>Only divs here</div></body></html>"
    with patch("topicfeed.ingest.scraper._fetch_html", AsyncMock(return_value=_response(page))), \
         patch("topicfeed.ingest.scraper.trafilatura.extract", return_value="Only  divs\nhere"):
        assert await scrape_article("https://x.com/story") == "Only divs here"


@pytest.mark.asyncio
async def test_scrape_article_empty_url():
    assert await scrape_article("") == ""


@pytest.mark.asyncio
async def test_scrape_articles_keeps_order_and_failures():
    articles = [
        CandidateArticle(title="A", url="https://x.com/a", published_at=NOW),
        CandidateArticle(title="B", url="https://x.com/b", published_at=NOW - timedelta(hours=1)),
    ]

    async def fake_scrape(url, timeout, max_length):
        return "body of a" if url.endswith("/a") else ""

    with patch("topicfeed.ingest.scraper.scrape_article", side_effect=fake_scrape):
        enriched = await scrape_articles(articles, timeout=5)

    assert [a.title for a in enriched] == ["A", "B"]
    assert enriched[0].body_text == "body of a"
    assert enriched[1].body_text == ""
    assert enriched[0].published_at == NOW

"""Full-text article scraping with boilerplate stripping."""

from __future__ import annotations

import logging

import httpx
import lxml.html
import trafilatura
from lxml import etree

from topicfeed.models import CandidateArticle, EnrichedArticle
from topicfeed.ratelimit import RateLimiter
from topicfeed.retry import retry_async

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)

UNWANTED_TAGS = ("script", "style", "nav", "footer", "header", "noscript", "aside", "iframe")
UNWANTED_CLASSES = ("advertisement", "ads", "sidebar")
TRUNCATION_MARKER = "..."


def _unwanted_xpath() -> str:
    tags = [f"//{tag}" for tag in UNWANTED_TAGS]
    classes = [
        f"//*[contains(concat(' ', normalize-space(@class), ' '), ' {cls} ')]"
        for cls in UNWANTED_CLASSES
    ]
    return " | ".join(tags + classes)


_UNWANTED = etree.XPath(_unwanted_xpath())


def extract_text(html: bytes | str) -> str:
    """Paragraph and list-item text of a page, boilerplate removed."""
    doc = lxml.html.fromstring(html)
    for element in _UNWANTED(doc):
        if element.getparent() is not None:
            element.drop_tree()

    paragraphs = []
    for element in doc.iter("p", "li"):
        text = " ".join(element.text_content().split())
        if text:
            paragraphs.append(text)
    return " ".join(paragraphs)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + TRUNCATION_MARKER


async def _fetch_html(url: str, timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": BROWSER_USER_AGENT},
    ) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp


async def scrape_article(url: str, timeout: float = 15.0, max_length: int = 15000) -> str:
    """Body text of the page at ``url``; empty string on any failure."""
    if not url:
        return ""
    try:
        resp = await retry_async(
            _fetch_html, url, timeout, max_retries=1, base_delay=0.5,
        )
        content_type = resp.headers.get("content-type", "")
        if content_type and "html" not in content_type.lower():
            logger.warning("Skipping non-HTML content at %s (%s)", url, content_type)
            return ""
        if not resp.content:
            return ""

        text = extract_text(resp.content)
        if not text:
            text = trafilatura.extract(
                resp.text, include_comments=False, include_tables=False,
            ) or ""
            text = " ".join(text.split())
        return truncate(text, max_length)
    except httpx.HTTPError as exc:
        logger.warning("Failed to fetch article from %s: %s", url, exc)
    except (etree.ParserError, ValueError) as exc:
        logger.warning("Failed to parse article from %s: %s", url, exc)
    except Exception:
        logger.exception("Unexpected error scraping %s", url)
    return ""


async def scrape_articles(
    articles: list[CandidateArticle],
    timeout: float = 15.0,
    max_length: int = 15000,
    limiter: RateLimiter | None = None,
) -> list[EnrichedArticle]:
    """Scrape each article one after another, in input order."""
    limiter = limiter or RateLimiter(0)
    logger.info("Fetching full text for %d articles", len(articles))

    enriched = []
    for article in articles:
        await limiter.acquire()
        text = await scrape_article(article.url, timeout=timeout, max_length=max_length)
        enriched.append(EnrichedArticle.from_candidate(article, text))
        if len(enriched) % 5 == 0:
            logger.info("  Progress: %d/%d", len(enriched), len(articles))

    with_text = sum(1 for a in enriched if a.body_text)
    logger.info("Fetched text for %d/%d articles", with_text, len(enriched))
    return enriched

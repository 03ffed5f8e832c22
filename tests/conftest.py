"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from topicfeed.config import load_config
from topicfeed.db import get_connection, init_db
from topicfeed.models import CandidateArticle, EnrichedArticle, Topic

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_config(tmp_path):
    """Minimal config for testing (no real API keys)."""
    config_text = """
llm:
  providers:
    mock:
      type: "openai_compatible"
      api_key: "test-key"
      base_url: "http://localhost:9999"
      default_model: "test-model"
      max_retries: 0
  tasks:
    classify: { provider: "mock" }

feeds:
  default:
    - "https://example.com/feed.xml"

keywords:
  include: ["cybersecurity", "cloud", "ai"]
  exclude: ["sports"]

pipeline:
  retention_days: 7
  timeout_seconds: 5
  classify_interval_seconds: 0
  max_articles_per_topic: 3

store:
  type: sqlite

artifacts:
  output_dir: "OUTPUT_DIR"
  keep: 3

database:
  path: "DB_PATH"
"""
    db_path = str(tmp_path / "test.db")
    output_dir = str(tmp_path / "artifacts")
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        config_text.replace("DB_PATH", db_path).replace("OUTPUT_DIR", output_dir)
    )
    return load_config(str(cfg_path))


@pytest.fixture
def db_conn(sample_config):
    """Initialized test database connection."""
    db_path = sample_config["database"]["path"]
    init_db(db_path)
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def sample_topics():
    return [
        Topic(topic_id=1, title="Cybersecurity", module_id=10, module_title="Security Fundamentals"),
        Topic(topic_id=2, title="Cloud Computing", module_id=10, module_title="Security Fundamentals"),
        Topic(topic_id=3, title="Machine Learning", module_id=20, module_title="Applied AI"),
    ]


@pytest.fixture
def sample_articles():
    """Candidate articles spread over the last few days."""
    return [
        CandidateArticle(
            title="AI breach at CloudCo",
            url="https://news.example.com/cloudco-breach",
            published_at=NOW - timedelta(days=1),
            summary="A cybersecurity incident exposed customer data.",
            source="Tech Wire",
        ),
        CandidateArticle(
            title="New cloud region opens",
            url="https://news.example.com/cloud-region",
            published_at=NOW - timedelta(days=2),
            summary="A provider expanded its cloud footprint.",
            source="Tech Wire",
        ),
        CandidateArticle(
            title="Local team wins final",
            url="https://news.example.com/sports-final",
            published_at=NOW - timedelta(hours=3),
            summary="Sports fans celebrated late into the night.",
            source="City Paper",
        ),
    ]


@pytest.fixture
def make_enriched():
    """Factory for scraped articles published `days_ago` before NOW."""

    def _make(
        title: str,
        url: str,
        body: str = "Body text.",
        days_ago: float = 1,
    ) -> EnrichedArticle:
        return EnrichedArticle(
            title=title,
            url=url,
            published_at=NOW - timedelta(days=days_ago),
            summary=f"Summary of {title}",
            source="Test Feed",
            body_text=body,
        )

    return _make

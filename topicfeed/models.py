"""Core data models for the topic-mapping pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactSchemaError(ValueError):
    """A persisted mapping record does not match the expected schema."""


@dataclass
class FeedSource:
    """An RSS/Atom feed URL to pull for this run."""

    url: str
    origin: str = "default"  # default, custom


@dataclass
class CandidateArticle:
    """A feed entry that passed the retention window, before scraping."""

    title: str
    url: str
    published_at: datetime
    summary: str = ""
    source: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.url, self.title)


@dataclass
class EnrichedArticle(CandidateArticle):
    """A candidate article with its scraped body text."""

    body_text: str = ""

    @classmethod
    def from_candidate(cls, article: CandidateArticle, body_text: str) -> EnrichedArticle:
        return cls(
            title=article.title,
            url=article.url,
            published_at=article.published_at,
            summary=article.summary,
            source=article.source,
            body_text=body_text,
        )


@dataclass
class Topic:
    """A user-defined topic and the module that owns it."""

    topic_id: int
    title: str
    module_id: int
    module_title: str = "Unknown"


@dataclass
class TopicScore:
    """Classifier output for one (article, topic) pair."""

    topic_id: int
    topic_title: str
    confidence: float
    reasoning: str = ""


@dataclass
class MappedArticle:
    """An article attached to a topic in the mapping artifact."""

    title: str
    url: str
    source: str
    published_at: datetime | None
    summary: str
    confidence: float
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "published": self.published_at.isoformat() if self.published_at else None,
            "summary": self.summary,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }

    @classmethod
    def from_dict(cls, data: Any) -> MappedArticle:
        if not isinstance(data, dict):
            raise ArtifactSchemaError(f"article record must be an object, got {type(data).__name__}")
        title = _require(data, "title", str)
        url = _require(data, "url", str)
        confidence = _require(data, "confidence", (int, float))
        if isinstance(confidence, bool) or not 0.0 <= confidence <= 1.0:
            raise ArtifactSchemaError(f"confidence out of range for {url}: {confidence!r}")

        published = data.get("published")
        published_at = None
        if published is not None:
            if not isinstance(published, str):
                raise ArtifactSchemaError(f"'published' must be an ISO string for {url}")
            try:
                published_at = datetime.fromisoformat(published)
            except ValueError as exc:
                raise ArtifactSchemaError(f"bad 'published' value for {url}: {published!r}") from exc

        return cls(
            title=title,
            url=url,
            source=str(data.get("source") or ""),
            published_at=published_at,
            summary=str(data.get("summary") or ""),
            confidence=float(confidence),
            reasoning=str(data.get("reasoning") or ""),
        )


@dataclass
class TopicArticleMapping:
    """One topic and its highest-confidence articles for a pipeline run."""

    topic_id: int
    topic_title: str
    module_id: int
    module_title: str
    articles: list[MappedArticle] = field(default_factory=list)

    @property
    def article_count(self) -> int:
        return len(self.articles)

    def to_dict(self) -> dict[str, Any]:
        return {
            "topicId": self.topic_id,
            "topicTitle": self.topic_title,
            "moduleId": self.module_id,
            "moduleTitle": self.module_title,
            "articleCount": self.article_count,
            "articles": [a.to_dict() for a in self.articles],
        }

    @classmethod
    def from_dict(cls, data: Any) -> TopicArticleMapping:
        if not isinstance(data, dict):
            raise ArtifactSchemaError(f"mapping record must be an object, got {type(data).__name__}")
        articles = _require(data, "articles", list)
        return cls(
            topic_id=_require(data, "topicId", int),
            topic_title=_require(data, "topicTitle", str),
            module_id=_require(data, "moduleId", int),
            module_title=_require(data, "moduleTitle", str),
            articles=[MappedArticle.from_dict(a) for a in articles],
        )


def _require(data: dict, key: str, kind):
    if key not in data:
        raise ArtifactSchemaError(f"missing required field '{key}'")
    value = data[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ArtifactSchemaError(
            f"field '{key}' has type {type(value).__name__}"
        )
    return value


@dataclass
class RunSummary:
    """Result of a single pipeline run, returned to the trigger."""

    success: bool = True
    articles_found: int = 0
    articles_processed: int = 0
    topics_with_articles: int = 0
    duration_seconds: float = 0.0
    artifact_path: str | None = None
    error: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "articlesFound": self.articles_found,
            "articlesProcessed": self.articles_processed,
            "topicsAnalyzed": self.topics_with_articles,
            "durationSeconds": round(self.duration_seconds, 2),
            "artifactPath": self.artifact_path,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class PipelineRun:
    """Record of a single pipeline execution."""

    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    status: str = "running"  # running, completed, failed
    articles_found: int = 0
    articles_processed: int = 0
    topics_with_articles: int = 0
    llm_tokens_used: int = 0
    llm_cost_usd: float = 0.0
    artifact_path: str | None = None
    error: str | None = None
    id: int | None = None

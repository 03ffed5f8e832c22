"""Pipeline orchestrator: feeds -> filter -> dedup -> scrape -> classify -> map."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from datetime import timedelta

from topicfeed.artifact import prune_artifacts, write_artifact
from topicfeed.classify import get_classifier
from topicfeed.classify.base import BaseClassifier, classify_articles
from topicfeed.config import PipelineSettings, get_db_path, get_pipeline_settings
from topicfeed.db import claim_run, finish_run, get_connection, init_db, is_locked_error
from topicfeed.ingest.resolver import resolve_feeds
from topicfeed.ingest.rss import fetch_all_feeds
from topicfeed.ingest.scraper import scrape_articles
from topicfeed.llm.usage import track_costs
from topicfeed.models import PipelineRun, RunSummary, Topic, utcnow
from topicfeed.process.dedup import dedupe_articles
from topicfeed.process.keywords import filter_by_keywords
from topicfeed.process.mapper import aggregate
from topicfeed.ratelimit import RateLimiter
from topicfeed.store import get_store
from topicfeed.store.base import BaseStore, TopicStoreError

logger = logging.getLogger(__name__)


class RunInProgressError(RuntimeError):
    """Another pipeline run has not finished yet."""


class Pipeline:
    """One configured pipeline instance. Runs never overlap."""

    def __init__(
        self,
        config: dict,
        settings: PipelineSettings | None = None,
        store: BaseStore | None = None,
        classifier: BaseClassifier | None = None,
    ):
        self.config = config
        self.settings = settings or get_pipeline_settings(config)
        self.store = store or get_store(config)
        self.classifier = classifier or get_classifier(
            config,
            top_n=self.settings.top_n,
            interval=self.settings.classify_interval_seconds,
        )
        self.db_path = get_db_path(config)
        self._lock = asyncio.Lock()

    async def run_once(self) -> RunSummary:
        """Execute one full run and report measured counts.

        Raises RunInProgressError if a run is already active in this process
        or recorded as running in the ledger. Every other failure is reported
        through ``RunSummary.success``.
        """
        if self._lock.locked():
            raise RunInProgressError("a pipeline run is already in progress")

        async with self._lock:
            try:
                init_db(self.db_path)
            except sqlite3.OperationalError as exc:
                if is_locked_error(exc):
                    raise RunInProgressError("the run ledger is locked by another run") from exc
                raise
            conn = get_connection(self.db_path)
            try:
                return await self._run_claimed(conn)
            finally:
                conn.close()

    async def _run_claimed(self, conn) -> RunSummary:
        run = PipelineRun()
        stale_after = timedelta(minutes=self.settings.stale_run_minutes)
        run_id = claim_run(conn, run, stale_after)
        if run_id is None:
            raise RunInProgressError("another pipeline run is marked as running")

        started = time.monotonic()
        logger.info("=" * 60)
        logger.info("Pipeline run #%d started at %s", run_id, run.started_at.isoformat())
        logger.info("=" * 60)

        with track_costs() as tracker:
            summary = RunSummary(timestamp=run.started_at)
            try:
                await self._execute(run, summary)
                run.status = "completed"
            except Exception as exc:
                logger.exception("Pipeline run #%d failed", run_id)
                summary.success = False
                summary.error = str(exc) or type(exc).__name__
                summary.artifact_path = None
                run.status = "failed"
                run.error = summary.error
            finally:
                summary.duration_seconds = time.monotonic() - started
                run.finished_at = utcnow()
                run.articles_found = summary.articles_found
                run.articles_processed = summary.articles_processed
                run.topics_with_articles = summary.topics_with_articles
                run.artifact_path = summary.artifact_path
                run.llm_tokens_used = tracker.total_tokens
                run.llm_cost_usd = tracker.total_cost_usd
                finish_run(conn, run_id, run)

        logger.info(
            "Pipeline run #%d %s in %.2fs: %d found, %d processed, "
            "%d topics with articles, %d tokens, $%.4f",
            run_id, run.status, summary.duration_seconds,
            summary.articles_found, summary.articles_processed,
            summary.topics_with_articles, run.llm_tokens_used, run.llm_cost_usd,
        )
        return summary

    async def _execute(self, run: PipelineRun, summary: RunSummary) -> None:
        settings = self.settings

        # --- Resolve + fetch (parallel across feeds) ---
        sources = await resolve_feeds(settings.default_feeds, self.store)
        since = run.started_at - timedelta(days=settings.retention_days)
        candidates = await fetch_all_feeds(sources, since, settings.timeout_seconds)
        if not candidates:
            logger.warning("No articles found from any feed")
            return

        # --- Keyword filter + dedup ---
        filtered = filter_by_keywords(
            candidates, settings.include_keywords, settings.exclude_keywords,
        )
        if not filtered:
            logger.warning("No relevant articles found after keyword filtering")
            return

        unique = dedupe_articles(filtered)
        summary.articles_found = len(unique)
        logger.info("After deduplication: %d articles", len(unique))

        topics = await self._load_topics()

        # --- Scrape (sequential) ---
        enriched = await scrape_articles(
            unique,
            timeout=settings.timeout_seconds,
            max_length=settings.max_article_length,
            limiter=RateLimiter(settings.scrape_interval_seconds),
        )
        valid = [a for a in enriched if a.body_text]
        summary.articles_processed = len(valid)
        logger.info("After scraping: %d articles with content", len(valid))
        if not valid:
            logger.warning("No valid articles after scraping")
            return

        # --- Classify (sequential, rate limited) + map ---
        scored = await classify_articles(self.classifier, valid, topics)
        mappings = aggregate(
            scored,
            topics,
            threshold=settings.acceptance_threshold,
            max_per_topic=settings.max_articles_per_topic,
        )
        summary.topics_with_articles = len(mappings)
        if not mappings:
            logger.warning("No article reached the acceptance threshold")
            return

        # --- Persist ---
        path = write_artifact(mappings, settings.output_dir, created_at=utcnow())
        summary.artifact_path = str(path)
        prune_artifacts(settings.output_dir, keep=settings.keep_artifacts)

    async def _load_topics(self) -> list[Topic]:
        try:
            topics = await self.store.list_topics()
        except TopicStoreError:
            raise
        except Exception as exc:
            raise TopicStoreError(f"cannot load topics: {exc}") from exc
        if not topics:
            raise TopicStoreError("no topics defined; nothing to classify against")
        logger.info("Loaded %d topics", len(topics))
        return topics


async def run_pipeline(config: dict) -> RunSummary:
    """Build a Pipeline from config and run it once."""
    return await Pipeline(config).run_once()

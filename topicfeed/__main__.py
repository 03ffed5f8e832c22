"""CLI entrypoint: python -m topicfeed {run|ingest|init-db|stats|latest|prune|add-feed|add-topic}."""

from __future__ import annotations

import argparse
import asyncio
import inspect
import json
import logging
import logging.handlers
import os
import sys
from datetime import timedelta
from pathlib import Path

from topicfeed.config import get_db_path, get_pipeline_settings, load_config
from topicfeed.db import (
    get_connection,
    get_recent_runs,
    init_db,
    insert_feed,
    insert_module,
    insert_topic,
)


def setup_logging(config: dict, verbose: bool = False) -> None:
    """Configure logging with console + rotating file output."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)

    # File handler (rotate at 5MB, keep 3 backups)
    log_dir = Path(get_db_path(config)).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        str(log_dir / "topicfeed.log"), maxBytes=5 * 1024 * 1024, backupCount=3,
    )
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    # Quiet noisy libraries
    for name in ("httpx", "httpcore", "trafilatura", "feedparser", "anthropic"):
        logging.getLogger(name).setLevel(logging.WARNING)


logger = logging.getLogger("topicfeed")


def cmd_init_db(config: dict, args: argparse.Namespace) -> None:
    """Initialize the SQLite database."""
    db_path = get_db_path(config)
    init_db(db_path)
    print(f"Database initialized at {db_path}")


async def cmd_run(config: dict, args: argparse.Namespace) -> None:
    """Run the pipeline once and print the summary as JSON."""
    from topicfeed.pipeline import RunInProgressError, run_pipeline

    try:
        summary = await run_pipeline(config)
    except RunInProgressError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    print(json.dumps(summary.to_dict(), indent=2))
    if not summary.success:
        sys.exit(1)


async def cmd_ingest(config: dict, args: argparse.Namespace) -> None:
    """Fetch, filter and dedupe feeds without scraping or classifying."""
    from topicfeed.ingest.resolver import resolve_feeds
    from topicfeed.ingest.rss import fetch_all_feeds
    from topicfeed.models import utcnow
    from topicfeed.process.dedup import dedupe_articles
    from topicfeed.process.keywords import filter_by_keywords
    from topicfeed.store import get_store

    settings = get_pipeline_settings(config)
    sources = await resolve_feeds(settings.default_feeds, get_store(config))
    since = utcnow() - timedelta(days=settings.retention_days)
    candidates = await fetch_all_feeds(sources, since, settings.timeout_seconds)
    filtered = filter_by_keywords(
        candidates, settings.include_keywords, settings.exclude_keywords,
    )
    unique = dedupe_articles(filtered)

    print(f"Feeds:    {len(sources)}")
    print(f"Fetched:  {len(candidates)}")
    print(f"Relevant: {len(filtered)}")
    print(f"Unique:   {len(unique)}")
    for article in unique[: args.limit]:
        print(f"  {article.published_at:%Y-%m-%d}  {article.title[:70]}  ({article.source})")


def cmd_stats(config: dict, args: argparse.Namespace) -> None:
    """Show recent pipeline run stats."""
    conn = get_connection(get_db_path(config))
    try:
        runs = get_recent_runs(conn, limit=args.limit)
    finally:
        conn.close()

    if not runs:
        print("No pipeline runs yet.")
        return

    header = (
        f"{'Run':>4} {'Status':<10} {'Found':<7} {'Proc':<6} "
        f"{'Topics':<7} {'Cost':>8} {'Started'}"
    )
    print(header)
    print("-" * 70)
    for r in runs:
        print(
            f"{r['id']:>4} {r['status']:<10} "
            f"{r['articles_found']:<7} {r['articles_processed']:<6} "
            f"{r['topics_with_articles']:<7} "
            f"${r['llm_cost_usd']:>7.3f} {r['started_at']}"
        )


def cmd_latest(config: dict, args: argparse.Namespace) -> None:
    """Print the newest mapping artifact, one block per topic."""
    from topicfeed.artifact import latest_artifact_path, load_mappings

    output_dir = get_pipeline_settings(config).output_dir
    path = latest_artifact_path(output_dir)
    if path is None:
        print("No mapped articles found yet. Run the pipeline first.")
        return

    mappings = load_mappings(path)
    print(f"{path.name}: {len(mappings)} topics with articles")
    for m in mappings:
        print(f"\n[{m.module_title}] {m.topic_title} (topic {m.topic_id})")
        for a in m.articles:
            print(f"  {a.confidence:>4.0%}  {a.title[:70]}")
            print(f"        {a.url}")


def cmd_prune(config: dict, args: argparse.Namespace) -> None:
    """Delete all but the newest N artifacts."""
    from topicfeed.artifact import prune_artifacts

    settings = get_pipeline_settings(config)
    keep = args.keep if args.keep is not None else settings.keep_artifacts
    deleted = prune_artifacts(settings.output_dir, keep=keep)
    print(f"Deleted {len(deleted)} old artifacts")


def cmd_add_feed(config: dict, args: argparse.Namespace) -> None:
    """Register a custom feed in the local store."""
    db_path = get_db_path(config)
    init_db(db_path)
    conn = get_connection(db_path)
    try:
        feed_id = insert_feed(conn, args.url, name=args.name or "", user_id=args.user)
    finally:
        conn.close()
    print(f"Added feed #{feed_id}: {args.url}")


def cmd_add_topic(config: dict, args: argparse.Namespace) -> None:
    """Add a topic (creating its module if needed) in the local store."""
    db_path = get_db_path(config)
    init_db(db_path)
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT module_id FROM modules WHERE title = ?", (args.module,)
        ).fetchone()
        module_id = row["module_id"] if row else insert_module(conn, args.module)
        topic_id = insert_topic(conn, args.topic, module_id)
    finally:
        conn.close()
    print(f"Added topic #{topic_id} '{args.topic}' to module '{args.module}'")


COMMANDS = {
    "run": cmd_run,
    "ingest": cmd_ingest,
    "init-db": cmd_init_db,
    "stats": cmd_stats,
    "latest": cmd_latest,
    "prune": cmd_prune,
    "add-feed": cmd_add_feed,
    "add-topic": cmd_add_topic,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m topicfeed")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="run the pipeline once")
    ingest = sub.add_parser("ingest", help="fetch feeds only (no scraping/LLM)")
    ingest.add_argument("--limit", type=int, default=20)
    sub.add_parser("init-db", help="create the SQLite schema")
    stats = sub.add_parser("stats", help="recent pipeline runs")
    stats.add_argument("--limit", type=int, default=10)
    sub.add_parser("latest", help="show the newest mapping artifact")
    prune = sub.add_parser("prune", help="delete old artifacts")
    prune.add_argument("--keep", type=int, default=None)

    add_feed = sub.add_parser("add-feed", help="add a custom feed to the local store")
    add_feed.add_argument("url")
    add_feed.add_argument("--name", default="")
    add_feed.add_argument("--user", type=int, default=0)

    add_topic = sub.add_parser("add-topic", help="add a topic to the local store")
    add_topic.add_argument("module")
    add_topic.add_argument("topic")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    config = load_config(os.environ.get("CONFIG_PATH", "config.yaml"))
    setup_logging(config, verbose=args.verbose)
    handler = COMMANDS[args.command]

    if inspect.iscoroutinefunction(handler):
        asyncio.run(handler(config, args))
    else:
        handler(config, args)


if __name__ == "__main__":
    main()

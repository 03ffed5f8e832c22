"""SQLite schema and query helpers for the run ledger and local stores."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

from topicfeed.models import PipelineRun, Topic, utcnow

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS user_feeds (
    feed_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL DEFAULT 0,
    url TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS modules (
    module_id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS topics (
    topic_id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    module_id INTEGER NOT NULL,
    FOREIGN KEY (module_id) REFERENCES modules(module_id)
);

CREATE TABLE IF NOT EXISTS pipeline_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT NOT NULL,
    finished_at TEXT,
    status TEXT NOT NULL DEFAULT 'running',
    articles_found INTEGER NOT NULL DEFAULT 0,
    articles_processed INTEGER NOT NULL DEFAULT 0,
    topics_with_articles INTEGER NOT NULL DEFAULT 0,
    llm_tokens_used INTEGER NOT NULL DEFAULT 0,
    llm_cost_usd REAL NOT NULL DEFAULT 0.0,
    artifact_path TEXT,
    error TEXT
);

CREATE INDEX IF NOT EXISTS idx_user_feeds_active ON user_feeds(active);
CREATE INDEX IF NOT EXISTS idx_topics_module_id ON topics(module_id);
CREATE INDEX IF NOT EXISTS idx_pipeline_runs_status ON pipeline_runs(status);
"""


def get_connection(db_path: str) -> sqlite3.Connection:
    """Get a SQLite connection with WAL mode enabled."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    """Create all tables and set schema version."""
    conn = get_connection(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        conn.commit()
    finally:
        conn.close()


def _dt_str(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()


def _parse_dt(s: str | None) -> datetime | None:
    if s is None:
        return None
    return datetime.fromisoformat(s)


# --- Feed helpers ---


def insert_feed(
    conn: sqlite3.Connection,
    url: str,
    name: str = "",
    user_id: int = 0,
    active: bool = True,
) -> int:
    cur = conn.execute(
        "INSERT INTO user_feeds (user_id, url, name, active, created_at) VALUES (?, ?, ?, ?, ?)",
        (user_id, url, name or url, int(active), _dt_str(utcnow())),
    )
    conn.commit()
    return cur.lastrowid


def list_active_feed_urls(conn: sqlite3.Connection) -> list[str]:
    """URLs of every active custom feed, across all users."""
    rows = conn.execute(
        "SELECT url FROM user_feeds WHERE active = 1 ORDER BY feed_id"
    ).fetchall()
    return [row["url"] for row in rows]


# --- Module/topic helpers ---


def insert_module(conn: sqlite3.Connection, title: str) -> int:
    cur = conn.execute("INSERT INTO modules (title) VALUES (?)", (title,))
    conn.commit()
    return cur.lastrowid


def insert_topic(conn: sqlite3.Connection, title: str, module_id: int) -> int:
    cur = conn.execute(
        "INSERT INTO topics (title, module_id) VALUES (?, ?)", (title, module_id)
    )
    conn.commit()
    return cur.lastrowid


def list_topics(conn: sqlite3.Connection) -> list[Topic]:
    """All topics joined with their owning module's title."""
    rows = conn.execute(
        """SELECT t.topic_id, t.title, t.module_id, m.title AS module_title
           FROM topics t LEFT JOIN modules m ON m.module_id = t.module_id
           ORDER BY t.module_id, t.topic_id"""
    ).fetchall()
    return [
        Topic(
            topic_id=row["topic_id"],
            title=row["title"],
            module_id=row["module_id"],
            module_title=row["module_title"] or "Unknown",
        )
        for row in rows
    ]


# --- PipelineRun helpers ---


def finish_run(conn: sqlite3.Connection, run_id: int, run: PipelineRun) -> None:
    conn.execute(
        """UPDATE pipeline_runs SET
           finished_at = ?, status = ?, articles_found = ?,
           articles_processed = ?, topics_with_articles = ?,
           llm_tokens_used = ?, llm_cost_usd = ?, artifact_path = ?, error = ?
           WHERE id = ?""",
        (
            _dt_str(run.finished_at),
            run.status,
            run.articles_found,
            run.articles_processed,
            run.topics_with_articles,
            run.llm_tokens_used,
            run.llm_cost_usd,
            run.artifact_path,
            run.error,
            run_id,
        ),
    )
    conn.commit()


def get_running_run(
    conn: sqlite3.Connection, stale_after: timedelta, now: datetime | None = None,
) -> dict | None:
    """Most recent run still marked 'running' that is not older than stale_after."""
    now = now or utcnow()
    rows = conn.execute(
        "SELECT * FROM pipeline_runs WHERE status = 'running' ORDER BY started_at DESC"
    ).fetchall()
    for row in rows:
        started = _parse_dt(row["started_at"])
        if started is not None and now - started < stale_after:
            return dict(row)
    return None


def is_locked_error(exc: sqlite3.OperationalError) -> bool:
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


def claim_run(
    conn: sqlite3.Connection, run: PipelineRun, stale_after: timedelta,
) -> int | None:
    """Insert a 'running' row unless a fresh one already exists.

    Check and insert share one IMMEDIATE transaction so two processes cannot
    both claim. Returns the new run id, or None if another run holds the claim
    or another connection holds the write lock past the busy timeout.
    """
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.OperationalError as exc:
        if is_locked_error(exc):
            return None
        raise
    try:
        if get_running_run(conn, stale_after, now=run.started_at) is not None:
            conn.rollback()
            return None
        cur = conn.execute(
            "INSERT INTO pipeline_runs (started_at, status) VALUES (?, ?)",
            (_dt_str(run.started_at), run.status),
        )
        conn.commit()
        return cur.lastrowid
    except BaseException:
        conn.rollback()
        raise


def get_recent_runs(conn: sqlite3.Connection, limit: int = 10) -> list[dict]:
    """Fetch recent pipeline runs for stats display."""
    rows = conn.execute(
        "SELECT * FROM pipeline_runs ORDER BY started_at DESC LIMIT ?", (limit,)
    ).fetchall()
    return [dict(row) for row in rows]

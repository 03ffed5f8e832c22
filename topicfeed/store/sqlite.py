"""Local SQLite-backed feed/topic store."""

from __future__ import annotations

import sqlite3

from topicfeed import db
from topicfeed.config import get_db_path, get_store_config
from topicfeed.models import Topic
from topicfeed.store import register_store
from topicfeed.store.base import BaseStore, TopicStoreError


@register_store("sqlite")
class SQLiteStore(BaseStore):
    """Reads user_feeds/modules/topics from the local database."""

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> str:
        return get_store_config(self.config).get("sqlite", {}).get("path") or get_db_path(self.config)

    async def list_active_feed_urls(self) -> list[str]:
        conn = db.get_connection(self.db_path)
        try:
            return db.list_active_feed_urls(conn)
        finally:
            conn.close()

    async def list_topics(self) -> list[Topic]:
        try:
            conn = db.get_connection(self.db_path)
        except sqlite3.Error as exc:
            raise TopicStoreError(f"cannot open topic database: {exc}") from exc
        try:
            return db.list_topics(conn)
        except sqlite3.Error as exc:
            raise TopicStoreError(f"cannot read topics: {exc}") from exc
        finally:
            conn.close()

"""Supabase (PostgREST) feed/topic store over plain HTTP."""

from __future__ import annotations

import logging

import httpx

from topicfeed.config import get_store_config
from topicfeed.models import Topic
from topicfeed.retry import retry_async
from topicfeed.store import register_store
from topicfeed.store.base import BaseStore, TopicStoreError

logger = logging.getLogger(__name__)


@register_store("supabase")
class SupabaseStore(BaseStore):
    """Reads ``userfeeds`` and ``Topics``/``Modules`` from a Supabase project."""

    @property
    def name(self) -> str:
        return "supabase"

    def _settings(self) -> dict:
        cfg = get_store_config(self.config).get("supabase", {})
        return {
            "url": (cfg.get("url") or "").rstrip("/"),
            "key": cfg.get("key", ""),
            "timeout": cfg.get("timeout", 15),
            "feeds_table": cfg.get("feeds_table", "userfeeds"),
            "topics_table": cfg.get("topics_table", "Topics"),
            "modules_table": cfg.get("modules_table", "Modules"),
        }

    async def _select(self, table: str, params: dict) -> list[dict]:
        settings = self._settings()
        if not settings["url"]:
            raise ValueError("store.supabase.url is not configured")
        headers = {
            "apikey": settings["key"],
            "Authorization": f"Bearer {settings['key']}",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(timeout=settings["timeout"]) as client:
            resp = await client.get(
                f"{settings['url']}/rest/v1/{table}", params=params, headers=headers,
            )
            resp.raise_for_status()
            data = resp.json()
        if not isinstance(data, list):
            raise ValueError(f"unexpected response from {table}: {type(data).__name__}")
        return data

    async def list_active_feed_urls(self) -> list[str]:
        rows = await retry_async(
            self._select,
            self._settings()["feeds_table"],
            {"select": "url", "active": "eq.true"},
            max_retries=2, base_delay=0.5,
        )
        return [row["url"] for row in rows if row.get("url")]

    async def list_topics(self) -> list[Topic]:
        settings = self._settings()
        modules_table = settings["modules_table"]
        params = {"select": f"topic_id,title,module_id,{modules_table}(module_id,title)"}
        try:
            rows = await retry_async(
                self._select, settings["topics_table"], params,
                max_retries=2, base_delay=0.5,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise TopicStoreError(f"cannot load topics from Supabase: {exc}") from exc

        topics = []
        for row in rows:
            module = row.get(modules_table) or {}
            try:
                topics.append(Topic(
                    topic_id=int(row["topic_id"]),
                    title=str(row["title"]),
                    module_id=int(row["module_id"]),
                    module_title=module.get("title") or "Unknown",
                ))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed topic row: %r", row)
        return topics

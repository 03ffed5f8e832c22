"""Feed and topic store registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from topicfeed.store.base import BaseStore

STORES: dict[str, type[BaseStore]] = {}


def register_store(name: str):
    """Decorator to register a feed/topic store backend."""

    def decorator(cls):
        STORES[name] = cls
        return cls

    return decorator


def get_store(config: dict) -> BaseStore:
    """Instantiate the store backend named by ``store.type``."""
    from topicfeed.config import get_store_config

    store_type = get_store_config(config)["type"]
    if store_type not in STORES:
        raise ValueError(f"Unknown store type: {store_type}")
    return STORES[store_type](config)


from topicfeed.store.sqlite import SQLiteStore  # noqa: E402, F401
from topicfeed.store.supabase import SupabaseStore  # noqa: E402, F401

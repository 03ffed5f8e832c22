"""Abstract interfaces for the tenant feed store and topic/module store."""

from __future__ import annotations

from abc import ABC, abstractmethod

from topicfeed.models import Topic


class TopicStoreError(RuntimeError):
    """The topic list could not be loaded; classification cannot proceed."""


class FeedStore(ABC):
    @abstractmethod
    async def list_active_feed_urls(self) -> list[str]:
        """URLs of custom feeds flagged active."""
        ...


class TopicStore(ABC):
    @abstractmethod
    async def list_topics(self) -> list[Topic]:
        """Every topic with its module id and title."""
        ...


class BaseStore(FeedStore, TopicStore):
    """A backend that serves both feeds and topics."""

    def __init__(self, config: dict):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        ...

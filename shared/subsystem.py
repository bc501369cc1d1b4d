"""
Application-level wiring for the embed subsystem.

Construct one EmbedSubsystem at startup and pass it (or its resolver) to
whatever renders link cards. Nothing here is a module-level singleton.
"""

import logging
from typing import Optional

from . import settings
from .dedupe import RequestDeduplicator
from .embed_cache import EmbedContentCache
from .embed_resolver import EmbedResolver
from .metadata_cache import MetadataCache
from .metadata_client import MetadataClient
from .storage import InMemoryStorage, JsonFileStorage, KeyValueStorage
from .visibility_gate import LazyVisibilityGate

logger = logging.getLogger(__name__)


def default_storage() -> KeyValueStorage:
    if settings.METADATA_CACHE_FILE:
        return JsonFileStorage(settings.METADATA_CACHE_FILE)
    return InMemoryStorage()


class EmbedSubsystem:

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        metadata_client: Optional[MetadataClient] = None,
        content_cache: Optional[EmbedContentCache] = None,
        metadata_cache: Optional[MetadataCache] = None,
    ):
        self.metadata_cache = metadata_cache or MetadataCache(storage or default_storage())
        self.content_cache = content_cache or EmbedContentCache()
        self.metadata_client = metadata_client or MetadataClient()
        self.resolver = EmbedResolver(
            content_cache=self.content_cache,
            metadata_cache=self.metadata_cache,
            metadata_client=self.metadata_client,
            deduplicator=RequestDeduplicator(),
        )
        self._started = False

    async def start(self, cleanup_delay: float = settings.CACHE_CLEANUP_DELAY) -> None:
        """Schedule the deferred metadata cache cleanup. Call from a running loop."""
        if self._started:
            return
        self.metadata_cache.schedule_cleanup(cleanup_delay)
        self._started = True

    async def close(self) -> None:
        self.metadata_cache.cancel_scheduled_cleanup()
        self.resolver.clear()
        await self.metadata_client.aclose()
        self._started = False

    def gate(self, url: str, title: Optional[str] = None, **kwargs) -> LazyVisibilityGate:
        """Create the visibility gate for one link card."""
        return LazyVisibilityGate(self.resolver, url, title=title, **kwargs)

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

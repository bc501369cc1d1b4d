"""In-memory cache of resolved embed descriptors, keyed by full URL."""

import time
from typing import Callable, Dict, Optional, Tuple

from . import settings
from .embeds import EmbedDescriptor


class EmbedContentCache:
    """
    Process-lifetime descriptor cache with a short TTL.

    Nothing here is durable: a restart starts empty, and expired entries are
    dropped on the next lookup. No capacity bound.
    """

    def __init__(self, ttl: float = settings.EMBED_CACHE_TTL,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[EmbedDescriptor, float]] = {}

    def get_embed(self, url: str) -> Optional[EmbedDescriptor]:
        cached = self._entries.get(url)
        if cached is None:
            return None
        descriptor, cached_at = cached
        if self._clock() - cached_at >= self.ttl:
            del self._entries[url]
            return None
        return descriptor

    def set_embed(self, url: str, descriptor: EmbedDescriptor) -> None:
        self._entries[url] = (descriptor, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, url: str) -> bool:
        return self.get_embed(url) is not None

    def __len__(self) -> int:
        return len(self._entries)

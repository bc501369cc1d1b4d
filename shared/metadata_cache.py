"""
Persistent cache for provider metadata (title and channel/owner name).

Entries live in a KeyValueStorage under a key prefix, serialized as JSON
with the time they were cached. Entries older than the TTL are treated as
absent and removed lazily; when the cache is full the oldest 20% are
evicted before a new entry is written.

Storage failures never escape this module: reads degrade to a miss and
failed writes are logged and followed by a best-effort cleanup.
"""

import asyncio
import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional, Tuple

from . import settings
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = 'yt_video_info_'
EVICTION_FRACTION = 0.2


@dataclass
class MetadataCacheEntry:
    external_id: str
    title: str
    channel: str
    cached_at: float


class MetadataCache:

    def __init__(
        self,
        storage: KeyValueStorage,
        ttl: float = settings.METADATA_CACHE_TTL,
        max_size: int = settings.METADATA_CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._cleanup_handle: Optional[asyncio.TimerHandle] = None

    def _key(self, external_id: str) -> str:
        return f"{CACHE_KEY_PREFIX}{external_id}"

    def _is_expired(self, entry: MetadataCacheEntry) -> bool:
        return self._clock() - entry.cached_at >= self.ttl

    def _read(self, key: str) -> Optional[MetadataCacheEntry]:
        """Decode one stored entry. Raises ValueError on corrupt data."""
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return MetadataCacheEntry(
                external_id=data['external_id'],
                title=data['title'],
                channel=data.get('channel', ''),
                cached_at=float(data['cached_at']),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed cache entry {key}: {e}") from e

    def _cache_keys(self) -> List[str]:
        return [key for key in self.storage.keys() if key.startswith(CACHE_KEY_PREFIX)]

    def get(self, external_id: str) -> Optional[MetadataCacheEntry]:
        """Return the cached entry, or None if missing or expired."""
        key = self._key(external_id)
        try:
            entry = self._read(key)
            if entry is None:
                return None
            if not self._is_expired(entry):
                return entry
            self.storage.remove_item(key)
        except Exception as e:
            logger.warning("Error reading metadata cache for %s: %s", external_id, e)
        return None

    def set(self, external_id: str, title: str, channel: str = '') -> None:
        """Cache metadata for an id, evicting the oldest entries when full."""
        try:
            key = self._key(external_id)
            is_new = self.storage.get_item(key) is None
            if is_new and self.size() >= self.max_size:
                self.cleanup_oldest(max(1, int(self.max_size * EVICTION_FRACTION)))

            entry = MetadataCacheEntry(
                external_id=external_id,
                title=title,
                channel=channel or '',
                cached_at=self._clock(),
            )
            self.storage.set_item(key, json.dumps(asdict(entry)))
        except Exception as e:
            # Storage may be full, reclaim what we can
            logger.warning("Error writing metadata cache for %s: %s", external_id, e)
            self.cleanup()

    def cleanup(self) -> int:
        """Remove expired and unreadable entries. Returns the number removed."""
        removed = 0
        try:
            for key in self._cache_keys():
                try:
                    entry = self._read(key)
                    expired = entry is not None and self._is_expired(entry)
                except ValueError:
                    expired = True
                if expired:
                    self.storage.remove_item(key)
                    removed += 1
        except Exception as e:
            logger.warning("Error cleaning metadata cache: %s", e)

        if removed:
            logger.info("Cleaned up %d expired metadata cache entries", removed)
        return removed

    def cleanup_oldest(self, count: int) -> None:
        """Remove the `count` oldest entries by cached_at."""
        entries: List[Tuple[float, str]] = []
        try:
            for key in self._cache_keys():
                try:
                    entry = self._read(key)
                except ValueError:
                    self.storage.remove_item(key)
                    continue
                if entry is not None:
                    entries.append((entry.cached_at, key))

            entries.sort()
            for _, key in entries[:count]:
                self.storage.remove_item(key)
        except Exception as e:
            logger.warning("Error evicting oldest metadata cache entries: %s", e)

    def size(self) -> int:
        try:
            return len(self._cache_keys())
        except Exception:
            return 0

    def clear(self) -> None:
        try:
            for key in self._cache_keys():
                self.storage.remove_item(key)
        except Exception as e:
            logger.warning("Error clearing metadata cache: %s", e)

    def schedule_cleanup(self, delay: float = settings.CACHE_CLEANUP_DELAY) -> asyncio.TimerHandle:
        """Run cleanup() once on the running loop after `delay` seconds."""
        loop = asyncio.get_running_loop()
        self._cleanup_handle = loop.call_later(delay, self.cleanup)
        return self._cleanup_handle

    def cancel_scheduled_cleanup(self) -> None:
        if self._cleanup_handle is not None:
            self._cleanup_handle.cancel()
            self._cleanup_handle = None

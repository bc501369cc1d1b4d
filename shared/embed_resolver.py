"""
Embed resolution: raw link URL in, renderable descriptor out.

Flow for one URL:
1. Classify the URL; unsupported or unparseable URLs settle immediately.
2. Serve the descriptor from the content cache when present.
3. Otherwise build it once per URL (concurrent callers share the work),
   fetching a display title through the metadata cache when asked to.
4. Cache the result, errors included, for the content-cache TTL.

Failures are reported in the result, never raised. Nothing here retries;
retry is the caller's decision.

The same resolver also backfills missing link titles in bulk, in batches
of at most 50 ids per provider request.
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set

from . import settings
from .dedupe import RequestDeduplicator
from .embed_cache import EmbedContentCache
from .embeds import (
    DEFAULT_THUMBNAIL_QUALITY,
    EmbedDescriptor,
    ErrorKind,
    build_descriptor,
    error_descriptor,
)
from .link_store import LinkItem, LinkStore, LinkStoreError
from .metadata_cache import MetadataCache
from .metadata_client import MetadataClient, MetadataFetchError, VideoInfo
from .title_utils import is_valid_title, validate_title_for_storage
from .url_classifier import Provider, ProviderRef, classify, classify_as

logger = logging.getLogger(__name__)


@dataclass
class EmbedResult:
    """State exposed to the UI for one resolution."""
    descriptor: Optional[EmbedDescriptor] = None
    is_loading: bool = False
    error_kind: Optional[ErrorKind] = None

    @property
    def thumbnail_url(self) -> Optional[str]:
        return self.descriptor.thumbnail_url if self.descriptor else None

    @property
    def ok(self) -> bool:
        return self.descriptor is not None and not self.descriptor.error

    @classmethod
    def from_descriptor(cls, descriptor: EmbedDescriptor) -> 'EmbedResult':
        return cls(descriptor=descriptor, error_kind=descriptor.error_kind)


def chunked(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class EmbedResolver:

    def __init__(
        self,
        content_cache: EmbedContentCache,
        metadata_cache: MetadataCache,
        metadata_client: MetadataClient,
        deduplicator: Optional[RequestDeduplicator] = None,
        thumbnail_quality: str = DEFAULT_THUMBNAIL_QUALITY,
        batch_size: int = settings.METADATA_BATCH_SIZE,
    ):
        self.content_cache = content_cache
        self.metadata_cache = metadata_cache
        self.metadata_client = metadata_client
        self.deduplicator = deduplicator or RequestDeduplicator()
        self.thumbnail_quality = thumbnail_quality
        self.batch_size = batch_size
        self._preload_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Single-URL resolution
    # ------------------------------------------------------------------

    def classify(self, url: str, provider_hint: Optional[Provider] = None) -> ProviderRef:
        """Classify url, extracting with the hinted provider's rules when one is given."""
        ref = classify(url)
        if provider_hint is None or ref.provider is Provider.UNSUPPORTED:
            return ref
        return classify_as(url, provider_hint)

    async def resolve(
        self,
        url: str,
        provider_hint: Optional[Provider] = None,
        want_title: bool = False,
        current_title: Optional[str] = None,
    ) -> EmbedResult:
        """
        Resolve a link URL to an EmbedResult.

        A title is fetched only when want_title is set and current_title is
        missing or invalid (empty, whitespace, or a URL).
        """
        ref = self.classify(url, provider_hint)
        if ref.provider is Provider.UNSUPPORTED:
            return EmbedResult.from_descriptor(
                error_descriptor(url, ref.provider, ErrorKind.UNSUPPORTED_FORMAT))
        if ref.is_parse_failure:
            return EmbedResult.from_descriptor(
                error_descriptor(url, ref.provider, ErrorKind.PARSE_FAILED))

        need_title = (want_title and ref.provider is Provider.YOUTUBE
                      and not is_valid_title(current_title))

        cached = self.content_cache.get_embed(url)
        if cached is not None and (not need_title or cached.title_checked or cached.error):
            return EmbedResult.from_descriptor(cached)

        try:
            descriptor = await self.deduplicator.dedupe(
                ('embed', url), lambda: self._build(url, ref, need_title))
        except Exception:
            logger.exception("Unexpected error resolving embed for %s", url)
            descriptor = error_descriptor(url, ref.provider, ErrorKind.FETCH_FAILED)
        return EmbedResult.from_descriptor(descriptor)

    async def _build(self, url: str, ref: ProviderRef, need_title: bool) -> EmbedDescriptor:
        try:
            descriptor = build_descriptor(url, ref, self.thumbnail_quality)
        except ValueError as e:
            logger.warning("Could not build embed for %s: %s", url, e)
            descriptor = error_descriptor(url, ref.provider, ErrorKind.PARSE_FAILED)
        else:
            if need_title:
                descriptor = await self._with_title(descriptor, ref.external_id)

        self.content_cache.set_embed(url, descriptor)
        return descriptor

    async def _with_title(self, descriptor: EmbedDescriptor, video_id: str) -> EmbedDescriptor:
        try:
            info = await self.fetch_title(video_id)
        except MetadataFetchError as e:
            logger.warning("Title lookup failed for video %s: %s", video_id, e)
            # Keep the playable frame, flag the failure so it is not refetched until expiry
            return dataclasses.replace(descriptor, error=True, error_kind=ErrorKind.FETCH_FAILED,
                                       title_checked=True)

        if info is None:
            return dataclasses.replace(descriptor, title_checked=True)
        return dataclasses.replace(descriptor, title=info.title, channel=info.channel,
                                   title_checked=True)

    # ------------------------------------------------------------------
    # Titles
    # ------------------------------------------------------------------

    async def fetch_title(self, video_id: str) -> Optional[VideoInfo]:
        """
        Title and channel for one video: metadata cache first, then the
        single-item provider endpoint. Raises MetadataFetchError on failure.
        """
        cached = self.metadata_cache.get(video_id)
        if cached is not None:
            return VideoInfo(title=cached.title, channel=cached.channel)

        info = await self.deduplicator.dedupe(
            ('metadata', video_id), lambda: self.metadata_client.fetch_one(video_id))
        return self._remember(video_id, info)

    async def fetch_titles(self, video_ids: Iterable[str]) -> Dict[str, VideoInfo]:
        """
        Titles for many videos. Cached ids are served locally; the rest are
        fetched in batches. A failed batch is logged and skipped, its ids
        stay absent from the result.
        """
        results: Dict[str, VideoInfo] = {}
        to_fetch: List[str] = []
        for video_id in dict.fromkeys(video_ids):
            cached = self.metadata_cache.get(video_id)
            if cached is not None and cached.title:
                results[video_id] = VideoInfo(title=cached.title, channel=cached.channel)
            else:
                to_fetch.append(video_id)

        for batch in chunked(to_fetch, self.batch_size):
            try:
                fetched = await self.metadata_client.fetch_batch(batch)
            except MetadataFetchError as e:
                logger.warning("Failed to fetch batch of %d video titles: %s", len(batch), e)
                continue

            for video_id, info in fetched.items():
                remembered = self._remember(video_id, info)
                if remembered is not None:
                    results[video_id] = remembered
                else:
                    logger.warning("Skipping video %s: invalid title after validation", video_id)

        return results

    def _remember(self, video_id: str, info: Optional[VideoInfo]) -> Optional[VideoInfo]:
        """Normalize a fetched title and write it to the metadata cache."""
        if info is None:
            return None
        title = validate_title_for_storage(info.title)
        if not title:
            return None
        self.metadata_cache.set(video_id, title, info.channel)
        return VideoInfo(title=title, channel=info.channel)

    async def backfill_titles(self, links: Iterable[LinkItem], store: LinkStore) -> int:
        """
        Resolve and store titles for YouTube links whose title is missing or
        invalid. Links whose id gets no title from the provider are left
        untouched. Returns the number of links updated.
        """
        links_by_video: Dict[str, List[LinkItem]] = {}
        for link in links:
            ref = classify(link.url)
            if ref.provider is not Provider.YOUTUBE or not ref.external_id:
                continue
            if is_valid_title(link.title):
                continue
            links_by_video.setdefault(ref.external_id, []).append(link)

        if not links_by_video:
            return 0

        infos = await self.fetch_titles(links_by_video)

        updated = 0
        for video_id, info in infos.items():
            for link in links_by_video.get(video_id, []):
                if await self._store_title(store, link, info.title):
                    updated += 1

        logger.info("Backfilled titles for %d of %d links", updated,
                    sum(len(group) for group in links_by_video.values()))
        return updated

    async def backfill_title(self, link: LinkItem, store: LinkStore) -> Optional[str]:
        """Single-link variant of backfill_titles. Returns the link's title, if any."""
        ref = classify(link.url)
        if ref.provider is not Provider.YOUTUBE:
            return None
        if is_valid_title(link.title):
            return link.title
        if not ref.external_id:
            return None

        try:
            info = await self.fetch_title(ref.external_id)
        except MetadataFetchError as e:
            logger.warning("Title lookup failed for video %s: %s", ref.external_id, e)
            return None

        if info is None:
            return None
        await self._store_title(store, link, info.title)
        return info.title

    async def _store_title(self, store: LinkStore, link: LinkItem, title: str) -> bool:
        confirmed_at = datetime.now(timezone.utc).isoformat()
        try:
            await asyncio.to_thread(
                store.update_link, link.id, {'title': title, 'titleConfirmedAt': confirmed_at})
        except LinkStoreError as e:
            logger.warning("Failed to store title for link %s (%s): %s", link.id, link.url, e)
            return False

        link.title = title
        link.title_confirmed_at = confirmed_at
        return True

    # ------------------------------------------------------------------
    # Preloading and lifecycle
    # ------------------------------------------------------------------

    def preload(self, urls: Iterable[str]) -> List[asyncio.Task]:
        """Start background resolution for URLs not cached or already in flight."""
        tasks = []
        for url in dict.fromkeys(urls):
            if url in self.content_cache or ('embed', url) in self.deduplicator:
                continue
            task = asyncio.ensure_future(self.resolve(url))
            self._preload_tasks.add(task)
            task.add_done_callback(self._preload_tasks.discard)
            tasks.append(task)
        return tasks

    def clear(self) -> None:
        self.content_cache.clear()
        self.deduplicator.clear()

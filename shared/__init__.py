"""Embed resolution and caching for study-music links."""

from .url_classifier import (
    Provider,
    ProviderRef,
    classify,
    classify_as,
    extract_youtube_id,
    extract_spotify_id,
    normalize_soundcloud_url,
)

from .title_utils import (
    MAX_TITLE_LENGTH,
    normalize_title,
    is_valid_title,
    truncate_title,
    validate_title_for_storage,
)

from .embeds import EmbedDescriptor, ErrorKind
from .storage import KeyValueStorage, InMemoryStorage, JsonFileStorage, StorageFullError
from .metadata_cache import MetadataCache, MetadataCacheEntry
from .embed_cache import EmbedContentCache
from .dedupe import RequestDeduplicator
from .metadata_client import MetadataClient, MetadataFetchError, VideoInfo
from .link_store import LinkItem, LinkStore, LinkStoreError, SupabaseLinkStore
from .embed_resolver import EmbedResolver, EmbedResult
from .availability import (
    AvailabilityStatus,
    AvailabilityResult,
    AvailabilitySweeper,
    SweepReport,
    check_video_availability,
)
from .visibility_gate import GateState, LazyVisibilityGate, RenderRetryPolicy
from .subsystem import EmbedSubsystem

__all__ = [
    # Classification
    'Provider',
    'ProviderRef',
    'classify',
    'classify_as',
    'extract_youtube_id',
    'extract_spotify_id',
    'normalize_soundcloud_url',
    # Title utilities
    'MAX_TITLE_LENGTH',
    'normalize_title',
    'is_valid_title',
    'truncate_title',
    'validate_title_for_storage',
    # Caches and storage
    'KeyValueStorage',
    'InMemoryStorage',
    'JsonFileStorage',
    'StorageFullError',
    'MetadataCache',
    'MetadataCacheEntry',
    'EmbedContentCache',
    'RequestDeduplicator',
    # Resolution
    'EmbedDescriptor',
    'ErrorKind',
    'EmbedResolver',
    'EmbedResult',
    'MetadataClient',
    'MetadataFetchError',
    'VideoInfo',
    'GateState',
    'LazyVisibilityGate',
    'RenderRetryPolicy',
    'EmbedSubsystem',
    # Store and sweep
    'LinkItem',
    'LinkStore',
    'LinkStoreError',
    'SupabaseLinkStore',
    'AvailabilityStatus',
    'AvailabilityResult',
    'AvailabilitySweeper',
    'SweepReport',
    'check_video_availability',
]

"""
Shared pytest fixtures for Study Embeds tests.
"""

import pytest
import sys
import importlib.util
from pathlib import Path

# Project root for finding Cloud Function modules
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from shared.embed_cache import EmbedContentCache
from shared.embed_resolver import EmbedResolver
from shared.link_store import LinkItem, LinkStore, LinkStoreError
from shared.metadata_cache import MetadataCache
from shared.metadata_client import MetadataFetchError, VideoInfo
from shared.storage import InMemoryStorage


def _load_module_from_path(module_name: str, file_path: Path):
    """Load a module from a specific file path."""
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


# Load Cloud Function modules with unique names at module load time
_video_info_module = _load_module_from_path(
    'video_info_main',
    PROJECT_ROOT / 'video-info' / 'main.py'
)

_availability_sweeper_module = _load_module_from_path(
    'availability_sweeper_main',
    PROJECT_ROOT / 'availability-sweeper' / 'main.py'
)


# ============================================================================
# Fakes
# ============================================================================

class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeMetadataClient:
    """
    Stands in for MetadataClient. `titles` maps video id to title; ids not
    in it are unknown to the provider. Set `fail` to make every call raise.
    """

    def __init__(self, titles=None, fail=False, max_batch_size=50):
        self.titles = dict(titles or {})
        self.fail = fail
        self.max_batch_size = max_batch_size
        self.one_calls = []
        self.batch_calls = []
        self.gate = None

    async def fetch_one(self, video_id):
        self.one_calls.append(video_id)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise MetadataFetchError("provider down", status_code=503)
        title = self.titles.get(video_id)
        return VideoInfo(title=title, channel='Study Channel') if title else None

    async def fetch_batch(self, video_ids):
        assert len(video_ids) <= self.max_batch_size
        self.batch_calls.append(list(video_ids))
        if self.fail:
            raise MetadataFetchError("provider down", status_code=503)
        return {
            video_id: VideoInfo(title=self.titles[video_id], channel='Study Channel')
            for video_id in video_ids
            if video_id in self.titles
        }

    async def aclose(self):
        pass


class FakeLinkStore(LinkStore):
    """In-memory LinkStore recording every mutation."""

    def __init__(self, links=None, memberships=None, fail_updates=False):
        self.links = {link.id: link for link in (links or [])}
        self.memberships = dict(memberships or {})
        self.fail_updates = fail_updates
        self.updates = []
        self.deleted_links = []
        self.deleted_memberships = []

    def list_links(self, url_patterns=None):
        links = list(self.links.values())
        if url_patterns:
            links = [l for l in links if any(p in l.url.lower() for p in url_patterns)]
        return links

    def update_link(self, link_id, patch):
        if self.fail_updates:
            raise LinkStoreError("update rejected")
        self.updates.append((link_id, patch))

    def delete_link(self, link_id):
        self.deleted_links.append(link_id)
        self.links.pop(link_id, None)

    def delete_combination_memberships(self, link_id):
        self.deleted_memberships.append(link_id)
        self.memberships.pop(link_id, None)


# ============================================================================
# Cache and resolver fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Returns a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def storage():
    """Returns an empty in-memory key-value storage."""
    return InMemoryStorage()


@pytest.fixture
def metadata_cache(storage, clock):
    """Returns a metadata cache over in-memory storage and the fake clock."""
    return MetadataCache(storage, ttl=24 * 60 * 60, max_size=500, clock=clock)


@pytest.fixture
def content_cache(clock):
    """Returns an embed content cache on the fake clock."""
    return EmbedContentCache(ttl=300, clock=clock)


@pytest.fixture
def fake_metadata_client():
    """Returns a fake metadata client knowing a handful of videos."""
    return FakeMetadataClient(titles={
        'dQw4w9WgXcQ': 'Lofi Hip Hop Radio',
        'jfKfPfyJRdk': 'Beats to Relax/Study To',
    })


@pytest.fixture
def resolver(content_cache, metadata_cache, fake_metadata_client):
    """Returns an EmbedResolver wired to fakes."""
    return EmbedResolver(
        content_cache=content_cache,
        metadata_cache=metadata_cache,
        metadata_client=fake_metadata_client,
    )


@pytest.fixture
def make_link():
    """Factory for LinkItem records."""
    def _make(link_id, url, title=None):
        return LinkItem(id=link_id, url=url, title=title, genre='lofi', type='music')
    return _make


@pytest.fixture
def fake_link_store():
    """Factory for FakeLinkStore."""
    return FakeLinkStore


@pytest.fixture
def fake_metadata_client_factory():
    """Factory for FakeMetadataClient."""
    return FakeMetadataClient


# ============================================================================
# HTTP function fixtures
# ============================================================================

@pytest.fixture
def mock_flask_request():
    """Factory for creating mock Flask request objects."""
    class MockRequest:
        def __init__(self, json_data=None, method='GET', headers=None, args=None):
            self._json = json_data or {}
            self.method = method
            self.headers = headers or {}
            self.args = args or {}
            self.data = b''

        def get_json(self, force=False, silent=False):
            return self._json

    return MockRequest


@pytest.fixture
def video_info_module():
    """Returns the video-info Cloud Function module."""
    return _video_info_module


@pytest.fixture
def youtube_info():
    """Returns single-video entry point from video-info."""
    return _video_info_module.youtube_info


@pytest.fixture
def youtube_info_batch():
    """Returns batch entry point from video-info."""
    return _video_info_module.youtube_info_batch


@pytest.fixture
def availability_sweeper_module():
    """Returns the availability-sweeper Cloud Function module."""
    return _availability_sweeper_module


@pytest.fixture
def check_videos():
    """Returns main entry point from availability-sweeper."""
    return _availability_sweeper_module.check_videos


@pytest.fixture
def youtube_api_response():
    """Sample YouTube Data API videos.list response (snippet part)."""
    return {
        "kind": "youtube#videoListResponse",
        "items": [
            {
                "id": "dQw4w9WgXcQ",
                "snippet": {
                    "title": "Lofi Hip Hop Radio",
                    "channelTitle": "Lofi Girl",
                    "description": "beats to relax/study to",
                }
            },
            {
                "id": "jfKfPfyJRdk",
                "snippet": {
                    "title": "Beats to Relax/Study To",
                    "channelTitle": "Lofi Girl",
                }
            }
        ]
    }

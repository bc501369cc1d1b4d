"""
Unit tests for EmbedSubsystem wiring and lifecycle.
"""

import asyncio

import pytest

from shared.storage import InMemoryStorage, JsonFileStorage
from shared.subsystem import EmbedSubsystem, default_storage
from shared.visibility_gate import GateState


class TestDefaultStorage:
    """Tests for default_storage()."""

    def test_in_memory_without_file(self, monkeypatch):
        """No cache file configured means in-memory storage."""
        monkeypatch.setattr('shared.settings.METADATA_CACHE_FILE', None)
        assert isinstance(default_storage(), InMemoryStorage)

    def test_file_when_configured(self, monkeypatch, tmp_path):
        """A configured cache file means JSON file storage."""
        monkeypatch.setattr('shared.settings.METADATA_CACHE_FILE', str(tmp_path / 'meta.json'))
        assert isinstance(default_storage(), JsonFileStorage)


class TestEmbedSubsystem:
    """Tests for EmbedSubsystem."""

    @pytest.mark.asyncio
    async def test_gate_resolves_through_shared_resolver(self, fake_metadata_client, metadata_cache):
        """Gates created by the subsystem share its caches."""
        async with EmbedSubsystem(metadata_client=fake_metadata_client,
                                  metadata_cache=metadata_cache) as subsystem:
            gate = subsystem.gate("https://youtu.be/dQw4w9WgXcQ")
            await gate.on_intersection(1.0)
            assert gate.state == GateState.RESOLVED

            second = subsystem.gate("https://youtu.be/dQw4w9WgXcQ")
            await second.on_intersection(1.0)

        assert len(fake_metadata_client.one_calls) == 1

    @pytest.mark.asyncio
    async def test_startup_cleanup(self, fake_metadata_client, metadata_cache, clock):
        """start() schedules the expired-entry cleanup."""
        metadata_cache.set('old', 'Old')
        clock.advance(2 * 24 * 60 * 60)

        subsystem = EmbedSubsystem(metadata_client=fake_metadata_client, metadata_cache=metadata_cache)
        await subsystem.start(cleanup_delay=0.01)
        await asyncio.sleep(0.05)
        await subsystem.close()

        assert metadata_cache.size() == 0

    @pytest.mark.asyncio
    async def test_close_clears_content_cache(self, fake_metadata_client, metadata_cache):
        """close() drops resolved descriptors."""
        subsystem = EmbedSubsystem(metadata_client=fake_metadata_client, metadata_cache=metadata_cache)
        await subsystem.resolver.resolve("https://open.spotify.com/track/1")
        assert len(subsystem.content_cache) == 1
        await subsystem.close()
        assert len(subsystem.content_cache) == 0

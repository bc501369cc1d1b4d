"""
Integration tests for SupabaseLinkStore against a mocked REST API.
"""

import json

import pytest
import requests
import responses

from shared.link_store import LinkStoreError, SupabaseLinkStore

SUPABASE_URL = "https://project.supabase.test"
LINKS_URL = f"{SUPABASE_URL}/rest/v1/links"
MEMBERSHIPS_URL = f"{SUPABASE_URL}/rest/v1/combination_links"


@pytest.fixture
def store():
    return SupabaseLinkStore(url=SUPABASE_URL, key="service-key")


class TestSupabaseLinkStore:
    """Tests for SupabaseLinkStore over the PostgREST API."""

    def test_requires_configuration(self, monkeypatch):
        """Missing URL or key is rejected up front."""
        monkeypatch.setattr('shared.settings.SUPABASE_URL', None)
        monkeypatch.setattr('shared.settings.SUPABASE_KEY', None)
        with pytest.raises(LinkStoreError):
            SupabaseLinkStore()

    @responses.activate
    def test_list_links_maps_rows(self, store):
        """Rows are mapped to LinkItem, with auth headers sent."""
        responses.add(responses.GET, LINKS_URL, json=[{
            'id': 7,
            'url': 'https://youtu.be/abc',
            'title': 'Focus',
            'genre': 'lofi',
            'type': 'music',
            'username': 'sam',
            'date_added': '2024-01-01T00:00:00Z',
            'titleConfirmedAt': None,
        }], status=200)

        links = store.list_links(url_patterns=['youtube.com', 'youtu.be'])

        assert len(links) == 1
        assert links[0].id == '7'
        assert links[0].submitted_by == 'sam'
        request = responses.calls[0].request
        assert request.headers['apikey'] == 'service-key'
        assert request.headers['Authorization'] == 'Bearer service-key'
        assert request.params['or'] == '(url.ilike.*youtube.com*,url.ilike.*youtu.be*)'

    @responses.activate
    def test_update_link(self, store):
        """update_link PATCHes the row by id."""
        responses.add(responses.PATCH, LINKS_URL, status=204)
        store.update_link('7', {'title': 'New'})

        request = responses.calls[0].request
        assert request.params['id'] == 'eq.7'
        assert json.loads(request.body) == {'title': 'New'}

    @responses.activate
    def test_delete_link_and_memberships(self, store):
        """Deletes target the right tables."""
        responses.add(responses.DELETE, MEMBERSHIPS_URL, status=204)
        responses.add(responses.DELETE, LINKS_URL, status=204)

        store.delete_combination_memberships('7')
        store.delete_link('7')

        assert responses.calls[0].request.params['link_id'] == 'eq.7'
        assert responses.calls[1].request.params['id'] == 'eq.7'

    @responses.activate
    def test_http_error(self, store):
        """Non-2xx responses raise LinkStoreError."""
        responses.add(responses.GET, LINKS_URL, status=500)
        with pytest.raises(LinkStoreError) as exc_info:
            store.list_links()
        assert '500' in str(exc_info.value)

    @responses.activate
    def test_timeout(self, store):
        """Transport errors raise LinkStoreError."""
        responses.add(responses.GET, LINKS_URL, body=requests.exceptions.Timeout())
        with pytest.raises(LinkStoreError):
            store.list_links()

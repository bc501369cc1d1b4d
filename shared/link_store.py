"""
Link records and the hosted store that holds them.

The embed subsystem needs only four store operations: list links, update a
link, delete a link, and delete the combination memberships pointing at a
link. SupabaseLinkStore implements them over the Supabase REST API
(PostgREST) with requests.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from . import settings

logger = logging.getLogger(__name__)

LINKS_TABLE = 'links'
COMBINATION_LINKS_TABLE = 'combination_links'
LINK_COLUMNS = 'id,url,title,genre,type,username,date_added,titleConfirmedAt'


class LinkStoreError(Exception):
    """A store request failed."""


@dataclass
class LinkItem:
    id: str
    url: str
    title: Optional[str] = None
    genre: str = ''
    type: str = ''
    submitted_by: str = ''
    added_at: Optional[str] = None
    title_confirmed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'LinkItem':
        return cls(
            id=str(row['id']),
            url=row['url'],
            title=row.get('title'),
            genre=row.get('genre') or '',
            type=row.get('type') or '',
            submitted_by=row.get('username') or '',
            added_at=row.get('date_added'),
            title_confirmed_at=row.get('titleConfirmedAt'),
        )


class LinkStore:
    """Interface to the relational store holding links and combinations."""

    def list_links(self, url_patterns: Optional[Sequence[str]] = None) -> List[LinkItem]:
        """List links, optionally only those whose url contains one of the patterns."""
        raise NotImplementedError

    def update_link(self, link_id: str, patch: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete_link(self, link_id: str) -> None:
        raise NotImplementedError

    def delete_combination_memberships(self, link_id: str) -> None:
        raise NotImplementedError


class SupabaseLinkStore(LinkStore):

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None,
                 timeout: float = settings.HTTP_TIMEOUT,
                 session: Optional[requests.Session] = None):
        url = url or settings.SUPABASE_URL
        key = key or settings.SUPABASE_KEY
        if not url or not key:
            raise LinkStoreError("SUPABASE_URL and SUPABASE_KEY must be configured")

        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'apikey': key,
            'Authorization': f'Bearer {key}',
            'Content-Type': 'application/json',
        })

    def _request(self, method: str, table: str, params: Dict[str, str],
                 json_body: Optional[dict] = None) -> requests.Response:
        try:
            response = self.session.request(
                method,
                f"{self.rest_url}/{table}",
                params=params,
                json=json_body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as e:
            raise LinkStoreError(
                f"{method} {table} failed: HTTP {e.response.status_code}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise LinkStoreError(f"{method} {table} failed: {e}") from e

    def list_links(self, url_patterns: Optional[Sequence[str]] = None) -> List[LinkItem]:
        params = {'select': LINK_COLUMNS}
        if url_patterns:
            # PostgREST uses * as the ilike wildcard in query strings
            clauses = ','.join(f'url.ilike.*{pattern}*' for pattern in url_patterns)
            params['or'] = f'({clauses})'

        rows = self._request('GET', LINKS_TABLE, params).json()
        return [LinkItem.from_row(row) for row in rows]

    def update_link(self, link_id: str, patch: Dict[str, Any]) -> None:
        self._request('PATCH', LINKS_TABLE, {'id': f'eq.{link_id}'}, json_body=patch)

    def delete_link(self, link_id: str) -> None:
        self._request('DELETE', LINKS_TABLE, {'id': f'eq.{link_id}'})

    def delete_combination_memberships(self, link_id: str) -> None:
        self._request('DELETE', COMBINATION_LINKS_TABLE, {'link_id': f'eq.{link_id}'})

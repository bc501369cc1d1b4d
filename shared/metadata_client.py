"""
Async client for the video metadata endpoints.

Talks to the video-info HTTP functions, which proxy the YouTube Data API:
    GET {base}/youtube-info?videoId=ID          -> {"title": ..., "channelTitle": ...}
    GET {base}/youtube-info-batch?videoIds=A,B  -> {"A": {"title": ..., "channelTitle": ...}, ...}

Ids missing from a batch response simply have no title. Any non-2xx
response fails the whole request with MetadataFetchError.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from . import settings

logger = logging.getLogger(__name__)


class MetadataFetchError(Exception):
    """Provider metadata request failed (transport error or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class VideoInfo:
    title: str
    channel: str = ''


def _parse_info(data) -> Optional[VideoInfo]:
    if not isinstance(data, dict) or not data.get('title'):
        return None
    return VideoInfo(title=data['title'], channel=data.get('channelTitle') or '')


class MetadataClient:

    def __init__(
        self,
        base_url: str = settings.METADATA_API_URL,
        timeout: float = settings.HTTP_TIMEOUT,
        max_batch_size: int = settings.METADATA_BATCH_SIZE,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.max_batch_size = max_batch_size
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def _get_json(self, path: str, params: dict):
        try:
            response = await self._client.get(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as e:
            raise MetadataFetchError(f"Request to {path} failed: {e}") from e

        if response.status_code != 200:
            raise MetadataFetchError(
                f"{path} returned {response.status_code}", status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as e:
            raise MetadataFetchError(f"{path} returned invalid JSON") from e

    async def fetch_batch(self, video_ids: List[str]) -> Dict[str, VideoInfo]:
        """Fetch title/channel for up to max_batch_size ids in one request."""
        if not video_ids:
            return {}
        if len(video_ids) > self.max_batch_size:
            raise ValueError(f"Batch of {len(video_ids)} ids exceeds limit of {self.max_batch_size}")

        data = await self._get_json('/youtube-info-batch', {'videoIds': ','.join(video_ids)})
        if not isinstance(data, dict):
            raise MetadataFetchError("Batch response is not an object")

        results = {}
        for video_id, item in data.items():
            info = _parse_info(item)
            if info:
                results[video_id] = info
        return results

    async def fetch_one(self, video_id: str) -> Optional[VideoInfo]:
        """Fetch title/channel for one id. Returns None if the video is not found."""
        try:
            data = await self._get_json('/youtube-info', {'videoId': video_id})
        except MetadataFetchError as e:
            if e.status_code == 404:
                return None
            raise
        return _parse_info(data)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

"""
YouTube Video Info Cloud Function

Proxies the YouTube Data API so the API key stays server-side. Serves the
title backfill done by the embed resolver.

Endpoints:
- youtube_info:        GET ?videoId=<id>          -> {title, channelTitle}
- youtube_info_batch:  GET ?videoIds=<id>,<id>... -> {<id>: {title, channelTitle}}

Videos the API does not return are simply absent from the batch response.
"""

import functions_framework
import requests
import json
import logging
import os
import sys

# Add shared module to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from shared import settings

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger('video_info')

# Configuration
YOUTUBE_API_KEY = settings.YOUTUBE_API_KEY
YOUTUBE_DATA_API_URL = settings.YOUTUBE_DATA_API_URL
MAX_BATCH_SIZE = 50  # YouTube Data API limit per request


class UpstreamError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


def parse_video_ids(raw):
    """Split a comma-separated id list, dropping blanks and duplicates."""
    if not raw:
        return []
    ids = [part.strip() for part in raw.split(',')]
    return list(dict.fromkeys(i for i in ids if i))


def fetch_snippets(video_ids):
    """Fetch snippet data for up to MAX_BATCH_SIZE videos. Returns {id: {title, channelTitle}}."""
    response = requests.get(
        YOUTUBE_DATA_API_URL,
        params={
            'part': 'snippet',
            'id': ','.join(video_ids[:MAX_BATCH_SIZE]),
            'key': YOUTUBE_API_KEY,
        },
        timeout=settings.HTTP_TIMEOUT,
    )
    if not response.ok:
        raise UpstreamError(f'YouTube API error: {response.status_code}', response.status_code)

    results = {}
    for item in response.json().get('items', []):
        snippet = item.get('snippet') or {}
        results[item.get('id')] = {
            'title': snippet.get('title', ''),
            'channelTitle': snippet.get('channelTitle', ''),
        }
    return results


def _cors_preflight():
    headers = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Methods': 'GET',
        'Access-Control-Allow-Headers': 'Content-Type',
        'Access-Control-Max-Age': '3600'
    }
    return ('', 204, headers)


def _handle(request, param, single):
    if request.method == 'OPTIONS':
        return _cors_preflight()

    headers = {'Access-Control-Allow-Origin': '*', 'Content-Type': 'application/json'}

    video_ids = parse_video_ids(request.args.get(param))
    if not video_ids:
        return (json.dumps({'error': f'{param} is required'}), 400, headers)
    if single:
        video_ids = video_ids[:1]

    if not YOUTUBE_API_KEY:
        logger.error("YOUTUBE_API_KEY is not configured")
        return (json.dumps({'error': 'YouTube API key not configured'}), 500, headers)

    try:
        results = fetch_snippets(video_ids)
    except UpstreamError as e:
        logger.warning("%s for %s", e, video_ids)
        return (json.dumps({'error': str(e)}), e.status_code, headers)
    except requests.exceptions.RequestException as e:
        logger.warning("YouTube API request failed: %s", e)
        return (json.dumps({'error': 'Failed to reach YouTube API'}), 502, headers)
    except Exception:
        logger.exception("Error fetching video info")
        return (json.dumps({'error': 'Internal server error'}), 500, headers)

    if single:
        info = results.get(video_ids[0])
        if info is None:
            return (json.dumps({'error': 'Video not found'}), 404, headers)
        return (json.dumps(info), 200, headers)

    return (json.dumps(results), 200, headers)


@functions_framework.http
def youtube_info(request):
    """Title and channel for a single video."""
    return _handle(request, 'videoId', single=True)


@functions_framework.http
def youtube_info_batch(request):
    """Titles and channels for up to 50 videos."""
    return _handle(request, 'videoIds', single=False)

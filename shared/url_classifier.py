"""
URL classification for submitted music links.

Maps a raw URL string to a ProviderRef: which provider serves it and the
provider-specific identifier needed to build an embed. Classification is a
pure function of the string; no network access happens here.

Supported shapes:
- YouTube: youtube.com/watch?v=ID, youtu.be/ID, youtube.com/embed/ID, youtube.com/v/ID
- Spotify: any open.spotify.com URL, identified by "{type}/{id}" from the last two path segments
- SoundCloud: any soundcloud.com URL, identified by its normalized form
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse


class Provider(str, Enum):
    YOUTUBE = 'youtube'
    SPOTIFY = 'spotify'
    SOUNDCLOUD = 'soundcloud'
    UNSUPPORTED = 'unsupported'


YOUTUBE_DOMAINS = ('youtube.com', 'youtu.be')
SPOTIFY_DOMAIN = 'spotify.com'
SOUNDCLOUD_DOMAIN = 'soundcloud.com'

# The id runs until the next query/fragment separator or newline
YOUTUBE_ID_PATTERNS = [
    re.compile(r'(?:youtube\.com/watch\?v=|youtu\.be/)([^&\n?#]+)', re.IGNORECASE),
    re.compile(r'youtube\.com/embed/([^&\n?#]+)', re.IGNORECASE),
    re.compile(r'youtube\.com/v/([^&\n?#]+)', re.IGNORECASE),
]


@dataclass(frozen=True)
class ProviderRef:
    """
    Provider tag plus identifier derived from a URL.

    external_id is None for UNSUPPORTED, and also when the provider domain
    matched but no identifier could be extracted (see is_parse_failure).
    """
    provider: Provider
    external_id: Optional[str] = None

    @property
    def is_supported(self) -> bool:
        return self.provider is not Provider.UNSUPPORTED and self.external_id is not None

    @property
    def is_parse_failure(self) -> bool:
        return self.provider is not Provider.UNSUPPORTED and self.external_id is None

    @property
    def spotify_kind(self) -> Optional[str]:
        """Entity type of a Spotify ref ("track", "playlist", ...), unvalidated."""
        if self.provider is not Provider.SPOTIFY or not self.external_id:
            return None
        return self.external_id.split('/', 1)[0]


UNSUPPORTED = ProviderRef(Provider.UNSUPPORTED)


def detect_provider(url: str) -> Provider:
    """Detect the provider from the URL's domain alone."""
    if not isinstance(url, str) or not url.strip():
        return Provider.UNSUPPORTED

    lowered = url.lower()
    if any(domain in lowered for domain in YOUTUBE_DOMAINS):
        return Provider.YOUTUBE
    if SPOTIFY_DOMAIN in lowered:
        return Provider.SPOTIFY
    if SOUNDCLOUD_DOMAIN in lowered:
        return Provider.SOUNDCLOUD
    return Provider.UNSUPPORTED


def extract_youtube_id(url: str) -> Optional[str]:
    """
    Extract the video id from any supported YouTube URL shape.

    Examples:
        >>> extract_youtube_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=10")
        'dQw4w9WgXcQ'

        >>> extract_youtube_id("https://youtu.be/dQw4w9WgXcQ")
        'dQw4w9WgXcQ'

        >>> extract_youtube_id("https://www.youtube.com/channel/abc") is None
        True
    """
    if not url:
        return None

    for pattern in YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def extract_spotify_id(url: str) -> Optional[str]:
    """
    Extract "{type}/{id}" from the last two path segments of a Spotify URL.

    The type is not checked against Spotify's entity kinds; callers build a
    best-effort embed URL for anything they get back.
    """
    try:
        path = urlparse(url.strip()).path
    except ValueError:
        return None

    segments = [segment for segment in path.split('/') if segment]
    if len(segments) < 2:
        return None

    kind, entity_id = segments[-2], segments[-1].split('?')[0]
    if not kind or not entity_id:
        return None
    return f"{kind}/{entity_id}"


def normalize_soundcloud_url(url: str) -> Optional[str]:
    """
    Normalize a SoundCloud URL for use as its identifier.

    Trims whitespace and a trailing slash, and canonicalizes numeric track
    and set URLs and user URLs. Returns None when the string is not on the
    SoundCloud domain.
    """
    if not url:
        return None

    clean_url = re.sub(r'/$', '', url.strip())
    if SOUNDCLOUD_DOMAIN not in clean_url.lower():
        return None

    if '/tracks/' in clean_url:
        match = re.search(r'/tracks/(\d+)', clean_url)
        if match:
            return f"https://soundcloud.com/tracks/{match.group(1)}"
    elif '/sets/' in clean_url:
        match = re.search(r'/sets/(\d+)', clean_url)
        if match:
            return f"https://soundcloud.com/sets/{match.group(1)}"
    elif '/users/' in clean_url:
        match = re.search(r'/users/([^/]+)', clean_url)
        if match:
            return f"https://soundcloud.com/users/{match.group(1)}"

    return clean_url


_EXTRACTORS = {
    Provider.YOUTUBE: extract_youtube_id,
    Provider.SPOTIFY: extract_spotify_id,
    Provider.SOUNDCLOUD: normalize_soundcloud_url,
}


def classify(url: str) -> ProviderRef:
    """Classify a raw URL string into a ProviderRef."""
    return classify_as(url, detect_provider(url))


def classify_as(url: str, provider: Provider) -> ProviderRef:
    """Extract the identifier of url using the rules of the given provider."""
    if provider is Provider.UNSUPPORTED:
        return UNSUPPORTED
    return ProviderRef(provider, _EXTRACTORS[provider](url))


def is_youtube_url(url: str) -> bool:
    return detect_provider(url) is Provider.YOUTUBE

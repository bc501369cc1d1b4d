"""
Embed descriptors and the provider-specific URL builders behind them.

Frame and thumbnail URLs are derived from a ProviderRef without any
network access.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import quote

from .url_classifier import Provider, ProviderRef

YOUTUBE_THUMBNAIL_QUALITIES = ('default', 'mqdefault', 'hqdefault', 'sddefault', 'maxresdefault')
DEFAULT_THUMBNAIL_QUALITY = 'hqdefault'

SOUNDCLOUD_PLAYER_PARAMS = (
    'color=%23ff5500&auto_play=false&hide_related=false&show_comments=true'
    '&show_user=true&show_reposts=false&show_teaser=true&visual=true'
)


class ErrorKind(str, Enum):
    UNSUPPORTED_FORMAT = 'unsupported_format'
    PARSE_FAILED = 'parse_failed'
    FETCH_FAILED = 'fetch_failed'
    STORAGE_FAILURE = 'storage_failure'
    RENDER_BLOCKED = 'render_blocked'


@dataclass(frozen=True)
class EmbedDescriptor:
    """Renderable form of a link: frame URL, thumbnail, or an error flag."""
    url: str
    provider: Provider
    frame_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    channel: Optional[str] = None
    error: bool = False
    error_kind: Optional[ErrorKind] = None
    # A title lookup ran for this descriptor, whether or not it found one
    title_checked: bool = False

    @property
    def external_url(self) -> str:
        """Link to the original content, offered when the embed cannot render."""
        return self.url

    def to_dict(self) -> dict:
        return {
            'url': self.url,
            'provider': self.provider.value,
            'frame_url': self.frame_url,
            'thumbnail_url': self.thumbnail_url,
            'title': self.title,
            'channel': self.channel,
            'error': self.error,
            'error_kind': self.error_kind.value if self.error_kind else None,
            'title_checked': self.title_checked,
        }


def youtube_embed_url(video_id: str) -> str:
    # Privacy-enhanced domain, no related videos from other channels
    return f"https://www.youtube-nocookie.com/embed/{video_id}?autoplay=0&rel=0&modestbranding=1"


def youtube_thumbnail_url(video_id: str, quality: str = DEFAULT_THUMBNAIL_QUALITY) -> str:
    if quality not in YOUTUBE_THUMBNAIL_QUALITIES:
        raise ValueError(f"Unknown thumbnail quality: {quality}")
    return f"https://i.ytimg.com/vi/{video_id}/{quality}.jpg"


def youtube_watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def spotify_embed_url(spotify_id: str) -> str:
    return f"https://open.spotify.com/embed/{spotify_id}"


def soundcloud_embed_url(normalized_url: str) -> str:
    return f"https://w.soundcloud.com/player/?url={quote(normalized_url, safe='')}&{SOUNDCLOUD_PLAYER_PARAMS}"


def build_descriptor(url: str, ref: ProviderRef,
                     thumbnail_quality: str = DEFAULT_THUMBNAIL_QUALITY) -> EmbedDescriptor:
    """Build the descriptor for a supported ProviderRef."""
    if not ref.is_supported:
        raise ValueError(f"Cannot build an embed for {ref.provider.value} ref without an id")

    if ref.provider is Provider.YOUTUBE:
        return EmbedDescriptor(
            url=url,
            provider=ref.provider,
            frame_url=youtube_embed_url(ref.external_id),
            thumbnail_url=youtube_thumbnail_url(ref.external_id, thumbnail_quality),
        )
    if ref.provider is Provider.SPOTIFY:
        return EmbedDescriptor(url=url, provider=ref.provider,
                               frame_url=spotify_embed_url(ref.external_id))
    if ref.provider is Provider.SOUNDCLOUD:
        return EmbedDescriptor(url=url, provider=ref.provider,
                               frame_url=soundcloud_embed_url(ref.external_id))
    raise ValueError(f"Unhandled provider: {ref.provider}")


def error_descriptor(url: str, provider: Provider, kind: ErrorKind) -> EmbedDescriptor:
    return EmbedDescriptor(url=url, provider=provider, error=True, error_kind=kind)

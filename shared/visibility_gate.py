"""
Two-stage lazy loading for embed cards.

Each card owns a gate that moves through:

    UNRESOLVED -> RESOLVING -> RESOLVED (thumbnail) -> LIVE (iframe)
                            |                           |
                            +-> ERROR <-----------------+

Resolution starts only once the card is at least 10% visible (or right
away where visibility cannot be observed). YouTube cards then wait for an
explicit click before the iframe goes live; other providers go live as
soon as they resolve.

Frames that fail to render are retried for SoundCloud only, at most 3
times. A YouTube frame error is terminal and the card falls back to an
external link.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from .embed_resolver import EmbedResolver, EmbedResult
from .embeds import EmbedDescriptor, ErrorKind
from .url_classifier import Provider

logger = logging.getLogger(__name__)

VISIBILITY_THRESHOLD = 0.1
SOUNDCLOUD_MAX_RETRIES = 3


class GateState(str, Enum):
    UNRESOLVED = 'unresolved'
    RESOLVING = 'resolving'
    RESOLVED = 'resolved'
    LIVE = 'live'
    ERROR = 'error'


class RenderRetryPolicy:
    """Counts frame reloads after render errors."""

    def __init__(self, max_retries: int):
        self.max_retries = max_retries
        self.retries = 0

    @classmethod
    def for_provider(cls, provider: Provider) -> 'RenderRetryPolicy':
        if provider is Provider.SOUNDCLOUD:
            return cls(SOUNDCLOUD_MAX_RETRIES)
        return cls(0)

    def should_retry(self) -> bool:
        if self.retries < self.max_retries:
            self.retries += 1
            return True
        return False


class LazyVisibilityGate:

    def __init__(
        self,
        resolver: EmbedResolver,
        url: str,
        title: Optional[str] = None,
        want_title: bool = True,
        threshold: float = VISIBILITY_THRESHOLD,
        on_change: Optional[Callable[['LazyVisibilityGate'], None]] = None,
    ):
        self.resolver = resolver
        self.url = url
        self.title = title
        self.want_title = want_title
        self.threshold = threshold
        self.on_change = on_change

        self.state = GateState.UNRESOLVED
        self.result: Optional[EmbedResult] = None
        self.error_kind: Optional[ErrorKind] = None
        self.retry_policy: Optional[RenderRetryPolicy] = None
        self._triggered = False
        self._alive = True

    @property
    def descriptor(self) -> Optional[EmbedDescriptor]:
        return self.result.descriptor if self.result else None

    @property
    def is_loading(self) -> bool:
        return self.state is GateState.RESOLVING

    @property
    def fallback_url(self) -> str:
        """External link shown when the embed cannot be rendered."""
        return self.url

    def _set_state(self, state: GateState) -> None:
        self.state = state
        if self.on_change is not None and self._alive:
            self.on_change(self)

    async def start(self, observer_supported: bool = True) -> None:
        """Mount the gate. Without visibility observation, resolve right away."""
        if not observer_supported:
            await self._trigger()

    async def on_intersection(self, ratio: float) -> None:
        """Report the visible fraction of the card. Triggers resolution once."""
        if ratio >= self.threshold:
            await self._trigger()

    async def _trigger(self) -> None:
        if self._triggered or not self._alive:
            return
        self._triggered = True
        self._set_state(GateState.RESOLVING)

        result = await self.resolver.resolve(
            self.url, want_title=self.want_title, current_title=self.title)

        # Unmounted while resolving: the caches are populated, the card is gone
        if not self._alive:
            return

        self.result = result
        descriptor = result.descriptor
        if descriptor is None or (descriptor.error and not descriptor.frame_url):
            self.error_kind = result.error_kind
            self._set_state(GateState.ERROR)
            return

        if descriptor.title:
            self.title = descriptor.title
        self.retry_policy = RenderRetryPolicy.for_provider(descriptor.provider)

        if descriptor.provider is Provider.YOUTUBE:
            self._set_state(GateState.RESOLVED)
        else:
            self._set_state(GateState.LIVE)

    def activate(self) -> bool:
        """User clicked the thumbnail. Returns True if the iframe goes live."""
        if not self._alive or self.state is not GateState.RESOLVED:
            return False
        self._set_state(GateState.LIVE)
        return True

    def report_render_error(self) -> bool:
        """
        The live frame failed to load (ad-blocker, network).

        Returns True when the caller should reload the frame; otherwise the
        gate moves to ERROR with RENDER_BLOCKED.
        """
        if not self._alive or self.state is not GateState.LIVE:
            return False

        if self.retry_policy is not None and self.retry_policy.should_retry():
            logger.info("Reloading frame for %s (attempt %d of %d)", self.url,
                        self.retry_policy.retries, self.retry_policy.max_retries)
            return True

        self.error_kind = ErrorKind.RENDER_BLOCKED
        self._set_state(GateState.ERROR)
        return False

    def close(self) -> None:
        """Unmount. Pending resolutions still finish but are not applied."""
        self._alive = False

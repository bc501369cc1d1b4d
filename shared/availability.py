"""
Availability sweep for stored YouTube links.

Checks every YouTube link against the oEmbed endpoint and removes the ones
that are gone: first the combination memberships pointing at the link,
then the link itself.

Outcome of a check:
- 2xx: AVAILABLE, kept
- 404: NOT_FOUND, removed
- any other HTTP status: UNAVAILABLE, removed
- no HTTP response at all (timeout, connection error): CHECK_FAILED,
  kept unless remove_on_check_failure is set

Links are processed one at a time. A failure on one link is logged and
counted and the sweep moves on; only a failure to list the links aborts it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import requests

from . import settings
from .embeds import youtube_watch_url
from .link_store import LinkStore
from .url_classifier import YOUTUBE_DOMAINS, extract_youtube_id

logger = logging.getLogger(__name__)


class AvailabilityStatus(str, Enum):
    AVAILABLE = 'available'
    NOT_FOUND = 'not_found'
    UNAVAILABLE = 'unavailable'
    CHECK_FAILED = 'check_failed'


@dataclass(frozen=True)
class AvailabilityResult:
    status: AvailabilityStatus
    error: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.status is AvailabilityStatus.AVAILABLE


def check_video_availability(video_id: str,
                             session: Optional[requests.Session] = None,
                             timeout: float = settings.HTTP_TIMEOUT) -> AvailabilityResult:
    """Check whether a YouTube video still exists via the oEmbed endpoint."""
    http = session or requests
    try:
        response = http.get(
            settings.YOUTUBE_OEMBED_URL,
            params={'url': youtube_watch_url(video_id), 'format': 'json'},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        return AvailabilityResult(AvailabilityStatus.CHECK_FAILED, f'Error checking video availability: {e}')

    if response.ok:
        return AvailabilityResult(AvailabilityStatus.AVAILABLE)
    if response.status_code == 404:
        return AvailabilityResult(AvailabilityStatus.NOT_FOUND, 'Video not found')
    return AvailabilityResult(AvailabilityStatus.UNAVAILABLE, f'Video unavailable (HTTP {response.status_code})')


def remove_unavailable_link(store: LinkStore, link_id: str) -> None:
    """Delete a link, memberships first so no combination points at a missing link."""
    store.delete_combination_memberships(link_id)
    store.delete_link(link_id)
    logger.info("Removed unavailable video link %s", link_id)


@dataclass
class SweepReport:
    checked: int = 0
    skipped: int = 0
    failed: int = 0
    removed_ids: List[str] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.removed_ids)

    def to_dict(self) -> dict:
        return {
            'checked': self.checked,
            'removed': self.removed,
            'skipped': self.skipped,
            'failed': self.failed,
        }


class AvailabilitySweeper:

    def __init__(
        self,
        store: LinkStore,
        checker: Callable[[str], AvailabilityResult] = check_video_availability,
        remove_on_check_failure: bool = settings.SWEEP_REMOVE_ON_CHECK_FAILURE,
    ):
        self.store = store
        self.checker = checker
        self.remove_on_check_failure = remove_on_check_failure

    def _should_remove(self, result: AvailabilityResult) -> bool:
        if result.status in (AvailabilityStatus.NOT_FOUND, AvailabilityStatus.UNAVAILABLE):
            return True
        if result.status is AvailabilityStatus.CHECK_FAILED:
            return self.remove_on_check_failure
        return False

    def sweep(self) -> SweepReport:
        """Check all YouTube links and remove the unavailable ones."""
        # Listing failures propagate: there is nothing to sweep without them
        links = self.store.list_links(url_patterns=YOUTUBE_DOMAINS)
        report = SweepReport()

        for link in links:
            video_id = extract_youtube_id(link.url)
            if not video_id:
                report.skipped += 1
                continue

            try:
                result = self.checker(video_id)
                report.checked += 1
                if not self._should_remove(result):
                    if result.status is AvailabilityStatus.CHECK_FAILED:
                        logger.warning("Skipping video %s, check failed: %s", video_id, result.error)
                    continue

                logger.info("Video %s is unavailable: %s", video_id, result.error)
                remove_unavailable_link(self.store, link.id)
                report.removed_ids.append(link.id)
            except Exception:
                logger.exception("Error sweeping link %s (%s)", link.id, link.url)
                report.failed += 1

        logger.info("Availability sweep finished: %s", report.to_dict())
        return report

"""
Title processing utilities for study-music links.

Link titles arrive from user submissions and from provider metadata.
Before a title is cached or written to the store it must be:
1. Normalized (internal whitespace, newlines and tabs collapsed to single spaces)
2. Non-empty and not a URL pasted into the title field
3. At most 200 characters, truncated at a word boundary
"""

import re
from typing import Optional, Tuple

# Store text columns are safe well beyond this, keep titles readable
MAX_TITLE_LENGTH = 200

URL_LIKE_PATTERNS = ('youtube.com', 'youtu.be')


def normalize_title(title: str) -> str:
    """
    Collapse all runs of whitespace (spaces, newlines, tabs) and trim.

    Examples:
        >>> normalize_title("  Lofi   beats\\n\\tto study  ")
        'Lofi beats to study'
    """
    if not title or not isinstance(title, str):
        return ''
    return re.sub(r'\s+', ' ', title).strip()


def is_valid_title(title: Optional[str]) -> bool:
    """
    Check if a title is usable for display.

    Empty, whitespace-only and URL-looking titles are invalid; links with
    such titles get their title resolved from provider metadata.
    """
    if not title or not title.strip():
        return False
    if any(pattern in title for pattern in URL_LIKE_PATTERNS) or title.startswith('http'):
        return False
    return True


def truncate_title(title: str, max_length: int = MAX_TITLE_LENGTH) -> Tuple[str, bool]:
    """
    Truncate title at word boundary, not mid-word.

    Returns:
        Tuple of (truncated_title, was_truncated)

    Examples:
        >>> truncate_title("Rain sounds for focus", 200)
        ('Rain sounds for focus', False)

        >>> truncate_title("Rain sounds for deep focus and study", 20)
        ('Rain sounds for', True)
    """
    if not title:
        return ('', False)

    title = normalize_title(title)
    if len(title) <= max_length:
        return (title, False)

    truncated = title[:max_length]
    last_space = truncated.rfind(' ')

    # Single long word, cut at the limit
    if last_space == -1:
        return (truncated, True)

    return (truncated[:last_space].rstrip(), True)


def validate_title_for_storage(title: Optional[str]) -> Optional[str]:
    """
    Normalize and bound a title before it is cached or stored.

    Returns None if nothing usable remains after normalization.
    """
    if not title or not isinstance(title, str):
        return None

    normalized = normalize_title(title)
    if not normalized:
        return None

    truncated, _ = truncate_title(normalized)
    return truncated or None

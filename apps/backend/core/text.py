"""
Text normalization helpers shared by every extraction stage.
"""
import re
import unicodedata
from typing import Optional

from bs4 import Tag

# Attributes that often carry the full string when visible text is truncated
RICH_TEXT_ATTRIBUTES = ['title', 'aria-label', 'data-title']

_WHITESPACE_RE = re.compile(r'\s+')


def _strip_control_chars(text: str) -> str:
    """Drop control/format characters, keeping whitespace for the collapse step."""
    return ''.join(
        ch for ch in text
        if ch.isspace() or unicodedata.category(ch) not in ('Cc', 'Cf')
    )


def normalize(raw: Optional[str]) -> str:
    """
    Collapse whitespace and remove control characters.

    Non-breaking spaces, tabs and newlines all become single spaces; the
    result is trimmed. ``None`` normalizes to an empty string.
    """
    if not raw:
        return ''
    text = str(raw).replace('\xa0', ' ')
    text = _strip_control_chars(text)
    return _WHITESPACE_RE.sub(' ', text).strip()


def restore_ellipsis(text: str) -> str:
    """Replace the Unicode ellipsis glyph with three periods."""
    return text.replace('…', '...') if text else ''


def prefer_rich_text(element: Optional[Tag]) -> str:
    """
    Return the fullest text available for an element.

    Listing pages truncate long titles visually while keeping the full string
    in ``title``/``aria-label``/``data-title``; those win over visible text.
    """
    if element is None:
        return ''
    for attr in RICH_TEXT_ATTRIBUTES:
        value = normalize(element.get(attr))
        if value:
            return value
    return normalize(element.get_text(' '))

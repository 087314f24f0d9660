"""
Description sanitizer.

Reduces a description fragment to a small tag subset with no attributes other
than a cleaned absolute ``href`` on anchors. Works on a detached copy; the
source document is never modified. Sanitizing already sanitized output
returns it unchanged.
"""
import logging
import re
from typing import Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from core.text import normalize
from core.urls import clean_href

logger = logging.getLogger(__name__)

# Removed with their content
REMOVE_TAGS = [
    'script', 'style', 'noscript', 'template',
    'svg', 'img', 'picture', 'source', 'video', 'audio', 'iframe', 'object', 'embed', 'canvas',
    'button', 'form', 'input', 'select', 'textarea', 'label', 'option',
    'header', 'footer', 'nav', 'aside',
]

# class/id substrings marking boilerplate blocks
NOISE_MARKERS = ['social', 'share', 'apply', 'login', 'banner', 'ad-', 'advert', 'cookie']

ALLOWED_TAGS = {
    'p', 'br',
    'b', 'strong', 'i', 'em', 'u',
    'ul', 'ol', 'li',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'a', 'span', 'div', 'section', 'article',
}

# Tags whose text never belongs to a description
_NON_TEXT_TAGS = ['script', 'style', 'noscript', 'template']

_WHITESPACE_RE = re.compile(r'\s+')

Fragment = Union[Tag, str, None]


def _detached_copy(fragment: Fragment) -> BeautifulSoup:
    """Parse the inner markup of ``fragment`` into a fresh tree."""
    if fragment is None:
        markup = ''
    elif isinstance(fragment, Tag):
        markup = fragment.decode_contents()
    else:
        markup = str(fragment)
    return BeautifulSoup(markup, 'html.parser')


def _is_noise(tag: Tag) -> bool:
    if not isinstance(tag, Tag) or not tag.attrs:
        return False
    classes = tag.get('class') or []
    if isinstance(classes, str):
        classes = [classes]
    haystack = ' '.join(classes + [str(tag.get('id') or '')]).lower()
    return any(marker in haystack for marker in NOISE_MARKERS)


def _is_chrome(tag: Tag) -> bool:
    return tag.name in REMOVE_TAGS or _is_noise(tag)


def _remove_chrome(soup: BeautifulSoup):
    # Comments, CDATA, doctypes and processing instructions never survive
    for node in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
        node.extract()
    while True:
        target = soup.find(_is_chrome)
        if target is None:
            break
        target.decompose()


def _strip_attributes(soup: BeautifulSoup, base_url: str):
    for tag in soup.find_all(True):
        if tag.name == 'a':
            href = tag.get('href')
            tag.attrs = {}
            cleaned = clean_href(href, base_url)
            if cleaned:
                tag['href'] = cleaned
        else:
            tag.attrs = {}


def _unwrap_disallowed(soup: BeautifulSoup):
    """Replace tags outside the allow-list with their text, or drop them if empty."""
    while True:
        target = soup.find(lambda t: t.name not in ALLOWED_TAGS)
        if target is None:
            break
        text = normalize(target.get_text(' '))
        if text:
            target.replace_with(NavigableString(text))
        else:
            target.decompose()


def _prune_empty(soup: BeautifulSoup):
    """Drop elements with no text and no child elements; ``<br>`` always stays."""
    while True:
        empties = [
            tag for tag in soup.find_all(True)
            if tag.name != 'br'
            and not tag.get_text(strip=True)
            and tag.find(True) is None
        ]
        if not empties:
            break
        for tag in empties:
            tag.decompose()


def sanitize(fragment: Fragment, base_url: str) -> str:
    """Sanitized inner HTML of ``fragment``; empty string when nothing survives."""
    soup = _detached_copy(fragment)
    _remove_chrome(soup)
    _strip_attributes(soup, base_url)
    _unwrap_disallowed(soup)
    _prune_empty(soup)
    return _WHITESPACE_RE.sub(' ', soup.decode(formatter='minimal')).strip()


def to_text(fragment: Fragment) -> str:
    """Clean-text view of the unsanitized fragment."""
    soup = _detached_copy(fragment)
    while True:
        target = soup.find(_NON_TEXT_TAGS)
        if target is None:
            break
        target.decompose()
    return normalize(soup.get_text(' '))


def describe(fragment: Fragment, base_url: str) -> Optional[dict]:
    """
    ``description_html``/``description_text`` pair built from one fragment.

    Returns ``None`` when the fragment yields neither.
    """
    description_html = sanitize(fragment, base_url)
    description_text = to_text(fragment)
    if not description_html and not description_text:
        logger.debug("[sanitizer] Description fragment is empty after cleaning")
        return None
    return {'description_html': description_html, 'description_text': description_text}

"""
Next list-page resolution.

Explicit "next" affordances are preferred; without them the ``page`` query
parameter is incremented (or ``page=2`` appended), so pagination always moves
forward. End of results is detected by the quota controller, not here.
"""
import re
import logging
from typing import Optional
from urllib.parse import urlparse, urlunparse, parse_qsl, urlencode

from bs4 import BeautifulSoup

from core.text import prefer_rich_text
from core.urls import resolve

logger = logging.getLogger(__name__)

PAGE_PARAM = 'page'

NEXT_PAGE_RE = re.compile(r'^(next(\s+page)?|›|»|>|>>|→)(\s*[›»>→])?$', re.IGNORECASE)


def _usable(href: Optional[str], current_url: str) -> Optional[str]:
    """Absolute link that does not point back at the current page."""
    absolute = resolve(href, current_url)
    if absolute is None or absolute == current_url:
        return None
    return absolute


def _rel_next(document: BeautifulSoup, current_url: str) -> Optional[str]:
    for tag in document.select('a[rel~="next"], link[rel~="next"]'):
        url = _usable(tag.get('href'), current_url)
        if url:
            return url
    return None


def _next_phrase(document: BeautifulSoup, current_url: str) -> Optional[str]:
    for link in document.find_all('a', href=True):
        if NEXT_PAGE_RE.match(prefer_rich_text(link)):
            url = _usable(link['href'], current_url)
            if url:
                return url
    return None


def _after_active(document: BeautifulSoup, current_url: str) -> Optional[str]:
    """Link in the pagination item following the active/current one."""
    active = document.select_one('.pagination .active, .pagination .current, [aria-current="page"]')
    if active is None:
        return None
    sibling = active.find_next_sibling()
    if sibling is None:
        return None
    link = sibling if sibling.name == 'a' else sibling.find('a', href=True)
    if link is None:
        return None
    return _usable(link.get('href'), current_url)


def increment_page(current_url: str) -> str:
    """``?page=3`` -> ``?page=4``; no page parameter -> ``page=2`` appended."""
    parsed = urlparse(current_url)
    params = parse_qsl(parsed.query, keep_blank_values=True)
    found = False
    updated = []
    for key, value in params:
        if key == PAGE_PARAM and not found:
            found = True
            try:
                value = str(int(value) + 1)
            except ValueError:
                value = '2'
        updated.append((key, value))
    if not found:
        updated.append((PAGE_PARAM, '2'))
    return urlunparse(parsed._replace(query=urlencode(updated), fragment=''))


def next_page_url(document: BeautifulSoup, current_url: str) -> str:
    """Next list-page URL; always returns one."""
    for strategy in (_rel_next, _next_phrase, _after_active):
        url = strategy(document, current_url)
        if url:
            logger.debug(f"[pagination] {strategy.__name__} -> {url}")
            return url
    return increment_page(current_url)

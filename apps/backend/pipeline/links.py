"""
Job link collection for list pages.

Links are taken from card containers when the known card markup is present,
and from every anchor on the page otherwise. Only detail-page links survive;
unparseable or non-http hrefs are dropped without aborting collection.
"""
import re
import logging
from typing import Dict, List, Tuple

from bs4 import BeautifulSoup, Tag

from core.text import normalize
from core.urls import canonicalize, is_job_detail_url, resolve

logger = logging.getLogger(__name__)

CARD_LINK_SELECTORS = [
    '.job-card a[href]',
    '.job-listing a[href]',
    'article a[href]',
]

CARD_CLASS_RE = re.compile(r'job-card|job-listing|search-result', re.IGNORECASE)

# Whole link texts that never name a job even when the href looks like one
GLOBAL_BLOCKLIST = {
    'more jobs', 'similar jobs', 'view all', 'view all jobs', 'see all', 'see all jobs',
    'login', 'log in', 'register', 'sign in', 'report job', 'share', 'share job',
}

# Stop climbing at these when searching for a card container
_CARD_CEILING = {'body', 'html', 'main', '[document]'}


def is_blocklisted(link_text: str) -> bool:
    """Check if the whole link text is a blocklisted phrase."""
    return normalize(link_text).lower().rstrip(' .:›»>') in GLOBAL_BLOCKLIST


def _detail_keys(tag: Tag, base_url: str) -> set:
    keys = set()
    for link in tag.find_all('a', href=True):
        absolute = resolve(link['href'], base_url)
        if is_job_detail_url(absolute):
            keys.add(canonicalize(absolute))
    return keys


def find_card(link: Tag, base_url: str) -> Tag:
    """
    Card subtree for a job link.

    Known card containers win; otherwise the widest ancestor that still
    links to a single job is used.
    """
    explicit = link.find_parent(lambda t: t.name == 'article' or bool(
        CARD_CLASS_RE.search(' '.join(t.get('class') or []))))
    if explicit is not None and len(_detail_keys(explicit, base_url)) <= 1:
        return explicit

    card = link
    parent = link.parent
    while parent is not None and parent.name not in _CARD_CEILING:
        if len(_detail_keys(parent, base_url)) > 1:
            break
        card = parent
        parent = parent.parent
    return card


def _candidate_groups(document: BeautifulSoup):
    """Card-scoped anchors per known card selector, then every anchor on the page."""
    for selector in CARD_LINK_SELECTORS:
        found = document.select(selector)
        if found:
            yield selector, found
    yield 'a[href]', document.find_all('a', href=True)


def _job_links(candidates: List[Tag], base_url: str) -> List[Tuple[str, Tag]]:
    collected: Dict[str, Tuple[str, Tag]] = {}
    for link in candidates:
        absolute = resolve(link.get('href'), base_url)
        if absolute is None:
            logger.debug(f"[links] Dropping unusable href {link.get('href')!r}")
            continue
        if not is_job_detail_url(absolute):
            continue
        if is_blocklisted(link.get_text(' ')):
            continue
        key = canonicalize(absolute)
        if key in collected:
            continue
        collected[key] = (key, find_card(link, base_url))
    return list(collected.values())


def collect_job_links(document: BeautifulSoup, base_url: str) -> List[Tuple[str, Tag]]:
    """
    Ordered, de-duplicated ``(canonical_url, card)`` pairs of a list page.

    The first link seen for a job decides its card.
    """
    for selector, candidates in _candidate_groups(document):
        links = _job_links(candidates, base_url)
        if links:
            logger.debug(f"[links] {len(links)} job links via {selector!r}")
            return links
    return []

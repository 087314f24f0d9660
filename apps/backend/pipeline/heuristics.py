"""
Heuristic classifier for list-page cards.

Cards rarely carry clean structure, so their visible text is split into lines
and each line is tagged with ordered exclusion rules. Every field takes the
first qualifying line in document order; no scoring, no backtracking.
"""

import re
import logging
from enum import Enum
from typing import List, Optional, Tuple

from bs4 import NavigableString, Tag
from bs4.element import PreformattedString

from core.text import normalize, prefer_rich_text, restore_ellipsis
from core.urls import is_job_detail_url, resolve
from .models import ListingSeed
from .salary import is_salary_line, parse_salary_line

logger = logging.getLogger(__name__)

RELATIVE_DATE_RE = re.compile(r'^(new|today|yesterday)$', re.IGNORECASE)
BADGE_RE = re.compile(r'^(easy apply|featured)$', re.IGNORECASE)
EMPLOYMENT_TYPE_RE = re.compile(
    r'\b(full[\s-]*time|part[\s-]*time|contract|temporary|internship|remote|hybrid|freelance|volunteer)\b',
    re.IGNORECASE
)
LINE_SPLIT_RE = re.compile(r'\n|\s{2,}')

# Elements whose boundaries start a new card line
LINE_BOUNDARY_TAGS = {
    'a', 'p', 'div', 'li', 'ul', 'ol', 'dl', 'dt', 'dd', 'tr', 'td', 'th',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'section', 'article', 'header', 'footer',
}

# Separators left dangling between a location and the employment type
_TRAILING_SEPARATORS = ' -–|•·,/'


class LineKind(Enum):
    TITLE = 'title'
    COMPANY = 'company'
    BADGE = 'badge'
    SALARY = 'salary'
    META = 'meta'
    CATEGORY = 'category'
    UNKNOWN = 'unknown'


def split_lines(text: str) -> List[str]:
    """Split on newlines or runs of 2+ spaces; trim and drop empties."""
    lines = []
    for part in LINE_SPLIT_RE.split((text or '').replace('\xa0', ' ')):
        line = normalize(part)
        if line:
            lines.append(line)
    return lines


def _line_block(node, card: Tag) -> Optional[Tag]:
    for parent in node.parents:
        if parent is card:
            return None
        if parent.name in LINE_BOUNDARY_TAGS:
            return parent
    return None


def card_text(card: Tag) -> str:
    """
    Visible card text with a newline wherever the enclosing block changes,
    so minified markup still yields one line per block.
    """
    parts = []
    previous_block = None
    for node in card.descendants:
        if not isinstance(node, NavigableString) or isinstance(node, PreformattedString):
            continue
        if node.parent is not None and node.parent.name in ('script', 'style', 'noscript', 'template'):
            continue
        block = _line_block(node, card)
        if parts and block is not previous_block:
            parts.append('\n')
        parts.append(str(node))
        previous_block = block
    return ''.join(parts)


def classify_line(line: str, titles: Tuple[str, ...] = ()) -> LineKind:
    """
    Intrinsic kind of a single card line.

    Free text comes back as ``UNKNOWN``; whether it is the company or the
    category depends on position and is decided by ``tag_lines``.
    """
    text = normalize(line)
    if not text:
        return LineKind.UNKNOWN
    if text in titles:
        return LineKind.TITLE
    if RELATIVE_DATE_RE.match(text) or BADGE_RE.match(text):
        return LineKind.BADGE
    if is_salary_line(text):
        return LineKind.SALARY
    if EMPLOYMENT_TYPE_RE.search(text):
        return LineKind.META
    return LineKind.UNKNOWN


def tag_lines(lines: List[str], titles: Tuple[str, ...] = ()) -> List[Tuple[str, LineKind]]:
    """Tag each line; the first free-text line is the company, the next the category."""
    tagged = []
    company_seen = category_seen = False
    for line in lines:
        kind = classify_line(line, titles)
        if kind is LineKind.UNKNOWN:
            if not company_seen:
                kind = LineKind.COMPANY
                company_seen = True
            elif not category_seen:
                kind = LineKind.CATEGORY
                category_seen = True
        tagged.append((line, kind))
    return tagged


def split_meta_line(line: str) -> Tuple[str, str]:
    """``"Lagos Full Time"`` -> ``("Lagos", "Full Time")``."""
    match = EMPLOYMENT_TYPE_RE.search(line)
    if not match:
        return '', ''
    job_type = normalize(re.sub(r'[\s-]+', ' ', match.group(1)))
    location = normalize(line[:match.start()]).rstrip(_TRAILING_SEPARATORS).strip()
    return location, job_type


def find_title_link(card: Tag, base_url: str) -> Optional[Tag]:
    """First anchor in the card that points at a job detail page."""
    for link in card.find_all('a', href=True):
        if is_job_detail_url(resolve(link['href'], base_url)):
            return link
    return None


def classify_card(card: Tag, base_url: str = 'https://www.jobberman.com') -> ListingSeed:
    """Harvest a ``ListingSeed`` from one card subtree."""
    link = find_title_link(card, base_url)
    title = restore_ellipsis(prefer_rich_text(link)) if link is not None else ''
    visible_title = normalize(link.get_text(' ')) if link is not None else ''
    titles = tuple(t for t in (title, visible_title) if t)

    seed = {}
    if title:
        seed['title'] = title

    for line, kind in tag_lines(split_lines(card_text(card)), titles):
        if kind is LineKind.COMPANY:
            seed.setdefault('company', line)
        elif kind is LineKind.CATEGORY:
            seed.setdefault('category', line)
        elif kind is LineKind.META and 'job_type' not in seed:
            location, job_type = split_meta_line(line)
            seed['job_type'] = job_type
            if location:
                seed['location'] = location
        elif kind is LineKind.SALARY and 'salary_range' not in seed:
            salary = parse_salary_line(line)
            if salary:
                seed['salary_range'] = salary.render()
        logger.debug(f"[heuristics] {kind.value}: {line[:80]}")

    return ListingSeed(**seed)

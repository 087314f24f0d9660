"""
Selector cascades for detail pages.

Each field owns an ordered list of CSS queries, tight structural anchors
first and broad attribute-pattern matches last. The first query that matches
anything wins and only its first element is used.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from core.config import load_selector_overrides
from core.text import normalize, prefer_rich_text, restore_ellipsis
from .models import JobFields
from .salary import render_salary

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')

SELECTOR_CASCADES: Dict[str, List[str]] = {
    'title': [
        'article h1.job-header__title',
        'h1.job-header__title',
        '[class*="job-header" i] h1',
        'main h1',
        'h1',
    ],
    'company': [
        'div.job-header__company > a',
        '[class*="job-header__company" i]',
        '[class*="job-header" i] [class*="company" i]',
        'article [class*="company" i]',
        '[class*="company-name" i]',
    ],
    'job_type': [
        '[class*="job-header" i] [class*="job-type" i]',
        '[class*="job-type" i]',
        '[class*="employment-type" i]',
    ],
    'location': [
        'span.job-location',
        '[class*="job-header" i] [class*="location" i]',
        'article [class*="location" i]',
        '[class*="location" i]',
    ],
    'salary_range': [
        '[class*="job-header" i] [class*="salary" i]',
        'article [class*="salary" i]',
        '[class*="salary" i]',
    ],
    'category': [
        '[class*="job-header" i] [class*="category" i]',
        'article [class*="category" i]',
        '[class*="category" i]',
    ],
    'description': [
        '.job-details__main',
        '[class*="job-description" i]',
        '#job-description',
        'article.job-details',
        'article',
        'body',
    ],
    'date_posted': [
        'span.job-post-date',
        '[class*="job-header" i] time',
        '[class*="post-date" i]',
        '[class*="posted" i]',
        'time[datetime]',
    ],
}

# Fields whose value may be visually truncated and restored from attributes
RICH_TEXT_FIELDS = {'title', 'company', 'location', 'category'}


def first_match(attempts: Iterable[Callable[[T], Optional[R]]], subject: T) -> Optional[R]:
    """Run ``attempts`` in order against ``subject``; the first non-empty result wins."""
    for attempt in attempts:
        result = attempt(subject)
        if result:
            return result
    return None


def _query(selector: str) -> Callable[[BeautifulSoup], Optional[Tag]]:
    def attempt(document: BeautifulSoup) -> Optional[Tag]:
        try:
            return document.select_one(selector)
        except SelectorSyntaxError as e:
            logger.warning(f"[selectors] Invalid selector {selector!r}: {e}")
            return None
    return attempt


def cascade_for(field_name: str) -> List[str]:
    """Query list for a field, with YAML overrides applied."""
    overrides = load_selector_overrides()
    return overrides.get(field_name) or SELECTOR_CASCADES.get(field_name, [])


def resolve_field(document: BeautifulSoup, ordered_queries: List[str]) -> Optional[Tag]:
    """First element of the first query that matches at least one element."""
    return first_match([_query(q) for q in ordered_queries], document)


def element_value(field_name: str, element: Optional[Tag]) -> str:
    """Normalized value of a resolved element for ``field_name``."""
    if element is None:
        return ''
    if field_name == 'date_posted' and element.get('datetime'):
        return normalize(element['datetime'])
    if field_name in RICH_TEXT_FIELDS:
        value = prefer_rich_text(element)
    else:
        value = normalize(element.get_text(' '))
    if field_name == 'salary_range' and value:
        value = render_salary(value)
    return restore_ellipsis(value)


def extract_cascade_fields(document: BeautifulSoup) -> Tuple[JobFields, Optional[Tag]]:
    """
    Resolve every scalar field through its cascade.

    Returns the non-empty fields plus the description container element
    (the caller sanitizes it).
    """
    fields: JobFields = {}
    for field_name in SELECTOR_CASCADES:
        if field_name == 'description':
            continue
        element = resolve_field(document, cascade_for(field_name))
        value = element_value(field_name, element)
        if value:
            fields[field_name] = value
        else:
            logger.debug(f"[selectors] No value for {field_name}")
    description = resolve_field(document, cascade_for('description'))
    return fields, description

"""
URL resolution and canonicalization for crawl dedup and link cleaning.
"""
import logging
from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse, parse_qsl, urlencode

logger = logging.getLogger(__name__)

SITE_ROOT = 'https://www.jobberman.com'

# Tracking parameters to strip from links kept in descriptions
TRACKING_PARAMS = ['utm_source', 'utm_medium', 'utm_campaign', 'utm_term',
                   'utm_content', 'fbclid', 'gclid', '_ga', 'ref', 'source']

ALLOWED_SCHEMES = ('http', 'https')


def resolve(href: Optional[str], base_url: str = SITE_ROOT) -> Optional[str]:
    """
    Resolve ``href`` against ``base_url``.

    Returns ``None`` for empty or unparseable input and for anything that is
    not an absolute http(s) URL after resolution (mailto:, javascript:, ...).
    """
    if not href or not href.strip():
        return None
    try:
        absolute = urljoin(base_url or SITE_ROOT, href.strip())
        parsed = urlparse(absolute)
    except ValueError as e:
        logger.debug(f"[urls] Unparseable href {href!r}: {e}")
        return None
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        return None
    return absolute


def canonicalize(url: str) -> str:
    """
    Dedup key for a crawled resource: scheme and host lowercased, trailing
    slash, query and fragment dropped, so links differing only by tracking
    noise collapse.
    """
    parsed = urlparse(url)
    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path.rstrip('/') or '/',
        '',
        '',
        ''
    ))


def strip_tracking(url: str) -> str:
    """Remove tracking parameters and the fragment, keeping other query params in order."""
    parsed = urlparse(url)
    tracking = {p.lower() for p in TRACKING_PARAMS}
    params = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)
              if k.lower() not in tracking]
    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path,
        parsed.params,
        urlencode(params) if params else '',
        ''
    ))


def clean_href(href: Optional[str], base_url: str) -> Optional[str]:
    """Absolute, tracking-free form of an anchor href, or ``None`` if unusable."""
    absolute = resolve(href, base_url)
    if absolute is None:
        return None
    return strip_tracking(absolute)


def is_job_detail_url(url: Optional[str]) -> bool:
    """Detail pages live under ``/listings/<slug>``."""
    if not url:
        return False
    return '/listings/' in urlparse(url).path.rstrip('/')

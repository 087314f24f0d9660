"""
Field merge across source tiers.

Precedence per field is structured data > selector cascade > list-page seed,
and a higher tier only wins with a value that is non-empty after
normalization. The description html/text pair always moves as one unit so
both halves come from the same source fragment.
"""
import logging
from typing import Optional

from core.text import normalize
from .models import JobFields, JobRecord, SEED_FIELDS

logger = logging.getLogger(__name__)

SCALAR_FIELDS = SEED_FIELDS + ['date_posted']
DESCRIPTION_FIELDS = ('description_html', 'description_text')


def _has_description(fields: JobFields) -> bool:
    return any(normalize(fields.get(name)) for name in DESCRIPTION_FIELDS)


def merge_fields(seed: Optional[JobFields], cascade: Optional[JobFields],
                 structured: Optional[JobFields]) -> JobFields:
    """Pure merge of three partial records, lowest tier first."""
    tiers = [seed or {}, cascade or {}, structured or {}]
    merged: JobFields = {}

    for name in SCALAR_FIELDS:
        value = ''
        for tier in tiers:
            candidate = normalize(tier.get(name))
            if candidate:
                value = candidate
        merged[name] = value

    merged['description_html'] = ''
    merged['description_text'] = ''
    for tier in tiers:
        if _has_description(tier):
            merged['description_html'] = tier.get('description_html') or ''
            merged['description_text'] = normalize(tier.get('description_text'))

    return merged


def merge(url: str, seed: Optional[JobFields], cascade: Optional[JobFields],
          structured: Optional[JobFields]) -> Optional[JobRecord]:
    """
    Merged record for ``url``, or ``None`` when the merged title is empty.

    A record without a title is invalid and must never be emitted.
    """
    fields = merge_fields(seed, cascade, structured)
    if not fields['title']:
        logger.warning(f"[merge] Dropping record without title: {url}")
        return None
    return JobRecord(url=url, **{k: (v or None) for k, v in fields.items()})

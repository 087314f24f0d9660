"""
Record types produced by the extraction pipeline.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

from core.text import normalize

SOURCE_NAME = 'jobberman.com'

# Partial record for one source tier (seed, selector cascade, structured data)
JobFields = Dict[str, str]

SEED_FIELDS = ['title', 'company', 'job_type', 'location', 'salary_range', 'category']
RECORD_FIELDS = SEED_FIELDS + ['description_html', 'description_text', 'date_posted']


class ListingSeed(BaseModel):
    """Fields harvested from a list-page card, carried to the detail request."""
    title: Optional[str] = None
    company: Optional[str] = None
    job_type: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    category: Optional[str] = None

    def as_fields(self) -> JobFields:
        """Only the populated fields."""
        return {name: value for name, value in self.model_dump().items() if value}


class JobRecord(BaseModel):
    """One fully resolved job posting."""
    url: str
    title: str
    company: Optional[str] = None
    job_type: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    category: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None
    date_posted: Optional[str] = None

    @field_validator('url', 'title')
    @classmethod
    def _required(cls, value: str) -> str:
        if not normalize(value):
            raise ValueError('must not be empty')
        return value

    def to_item(self, fetched_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Output row: empty strings become ``None``; provenance fields appended."""
        item: Dict[str, Any] = {name: (value or None) for name, value in self.model_dump().items()}
        stamp = fetched_at or datetime.now(timezone.utc)
        item['_source'] = SOURCE_NAME
        item['_fetched_at'] = stamp.strftime('%Y-%m-%dT%H:%M:%S.') + f"{stamp.microsecond // 1000:03d}Z"
        return item


@dataclass
class ListPageResult:
    """Outcome of processing one list page."""
    links: List[str] = field(default_factory=list)
    seeds_by_url: Dict[str, ListingSeed] = field(default_factory=dict)
    next_page_url: Optional[str] = None
    # Records pushed directly when detail pages are not collected
    items: List[Dict[str, Any]] = field(default_factory=list)
    stop: bool = False


@dataclass
class DetailPageResult:
    """Outcome of processing one detail page."""
    record: Optional[JobRecord] = None
    warnings: List[str] = field(default_factory=list)
    skipped: bool = False

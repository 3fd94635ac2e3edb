#!/usr/bin/env python3
"""
Article data model.

The normalized entity every source converges to. Articles are immutable once
produced; derived properties are added by creating a new instance.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Any, Mapping, Optional

import pytz
from dateutil import parser as date_parser

from ..content.extractor import html_to_text
from ..exceptions import ContractViolation
from ..urls import canonicalize_url, domain_of, is_valid_url
from .identifiers import StableId, generate_stable_id

_CDATA_RE = re.compile(r'<!\[CDATA\[(?P<text>.*?)\]\]>', re.DOTALL)
_WHITESPACE_RE = re.compile(r'\s+')


def strip_cdata(text: str) -> str:
    """Unwrap CDATA sections left in feed fields by sloppy publishers."""
    return _CDATA_RE.sub(lambda m: m.group('text'), text)


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(' ', text).strip()


def ensure_utc(value: datetime) -> datetime:
    """Convert to UTC, assuming UTC for naive datetimes."""
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def _is_aware(value: Any) -> bool:
    return isinstance(value, datetime) and value.tzinfo is not None and value.utcoffset() is not None


def _parse_datetime_safe(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class Article:
    """
    A single article from one source.

    `timestamp` is the publish time when the source provides one and the
    fetch time otherwise; it is what deduplication compares.
    """
    id: StableId
    source_name: str
    source_domain: str
    url: str
    title: str
    fetched_at: datetime
    published: Optional[datetime] = None
    summary: str = ""
    text: str = ""
    html: str = ""
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Reject instances that break the article invariants."""
        if not isinstance(self.title, str) or not self.title.strip():
            raise ContractViolation('title', self.title, 'non-empty text')
        if not is_valid_url(self.url):
            raise ContractViolation('url', self.url, 'absolute http(s) URL')
        if not self.source_name:
            raise ContractViolation('source_name', self.source_name, 'non-empty source name')
        if not _is_aware(self.fetched_at):
            raise ContractViolation('fetched_at', self.fetched_at, 'timezone-aware datetime')
        if self.published is not None and not _is_aware(self.published):
            raise ContractViolation('published', self.published, 'timezone-aware datetime or None')

    @classmethod
    def create(cls,
               source_name: str,
               url: str,
               title: str,
               published: Optional[datetime] = None,
               fetched_at: Optional[datetime] = None,
               summary: str = "",
               text: str = "",
               html: str = "",
               source_domain: Optional[str] = None,
               properties: Optional[Mapping[str, Any]] = None) -> 'Article':
        """
        Build a normalized article from raw source values.

        Raises:
            ContractViolation: If the title is empty or the URL is not valid
        """
        if not isinstance(url, str) or not is_valid_url(url):
            raise ContractViolation('url', url, 'absolute http(s) URL')
        if not isinstance(title, str):
            raise ContractViolation('title', title, 'text')

        canonical_url = canonicalize_url(url)
        clean_title = normalize_whitespace(strip_cdata(title))

        clean_summary = html_to_text(strip_cdata(summary or ""))

        fetched_at = ensure_utc(fetched_at or datetime.now(timezone.utc))
        if published is not None:
            published = ensure_utc(published)

        return cls(
            id=generate_stable_id(cls, source_name, canonical_url),
            source_name=source_name,
            source_domain=source_domain or domain_of(canonical_url),
            url=canonical_url,
            title=clean_title,
            fetched_at=fetched_at,
            published=published,
            summary=clean_summary,
            text=(text or "").strip(),
            html=(html or "").strip(),
            properties=dict(properties or {})
        )

    @property
    def timestamp(self) -> datetime:
        return self.published or self.fetched_at

    def with_properties(self, properties: Mapping[str, Any]) -> 'Article':
        """Return a copy with the given derived properties merged in."""
        merged = dict(self.properties)
        merged.update(properties)
        return replace(self, properties=merged)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': str(self.id),
            'source': self.source_name,
            'domain': self.source_domain,
            'url': self.url,
            'title': self.title,
            'published': self.published.isoformat() if self.published else None,
            'fetched_at': self.fetched_at.isoformat(),
            'summary': self.summary,
            'text': self.text,
            'properties': dict(self.properties)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Article':
        """Create Article from a dictionary produced by to_dict()."""
        return cls.create(
            source_name=data.get('source', ''),
            url=data.get('url', ''),
            title=data.get('title', ''),
            published=_parse_datetime_safe(data.get('published')),
            fetched_at=_parse_datetime_safe(data.get('fetched_at')),
            summary=data.get('summary', '') or '',
            text=data.get('text', '') or '',
            source_domain=data.get('domain'),
            properties=data.get('properties') or {}
        )

    def __repr__(self):
        return f"Article(title='{self.title[:50]}...', source='{self.source_name}', id='{self.id}')"

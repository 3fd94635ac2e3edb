#!/usr/bin/env python3
"""
Source description model.

Describes one configured outlet. Purely declarative: how a source is fetched
lives in its strategy object, not here.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from ..exceptions import ConfigurationError
from ..urls import domain_of, is_valid_url


class FetchStrategyKind(str, Enum):
    """How a source's articles are obtained."""
    FEED = "feed"
    SCRAPE = "scrape"
    AUTHENTICATED_SCRAPE = "authenticated-scrape"


@dataclass(frozen=True)
class SourceInfo:
    """Metadata about a news source."""
    name: str
    url: str
    strategy: FetchStrategyKind
    language: str = "en"
    categories: Tuple[str, ...] = ()
    title_prefixes: Tuple[str, ...] = ()
    title_suffixes: Tuple[str, ...] = ()
    domain: str = field(default="", compare=False)

    def __post_init__(self):
        """Validate metadata and derive the domain."""
        if not self.name or not self.name.strip():
            raise ConfigurationError('name', "source name must not be empty")
        if not is_valid_url(self.url):
            raise ConfigurationError(f"{self.name}.url", f"invalid source URL {self.url!r}")
        if not self.domain:
            object.__setattr__(self, 'domain', domain_of(self.url))

    def clean_title(self, title: str) -> str:
        """Remove outlet-specific title decorations such as ' | Site Name'."""
        cleaned_title = title.strip()

        for prefix in self.title_prefixes:
            if cleaned_title.startswith(prefix):
                cleaned_title = cleaned_title[len(prefix):]

        for suffix in self.title_suffixes:
            if cleaned_title.endswith(suffix):
                cleaned_title = cleaned_title[:-len(suffix)]

        return cleaned_title.strip()

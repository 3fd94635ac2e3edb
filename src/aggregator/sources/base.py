#!/usr/bin/env python3
"""
Base classes for news sources.

A source is a SourceAdapter: declarative SourceInfo plus a FetchStrategy that
knows how to turn HTTP responses into articles. All sources expose the same
contract regardless of how they are fetched.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import requests

from ..content.extractor import ExtractedContent, extract_article
from ..exceptions import ConfigurationError, ParseError
from ..models.results import FetchBatch
from ..models.session import Session
from ..models.source import FetchStrategyKind, SourceInfo
from .http import HttpClient, ensure_success

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentRules:
    """Where the body of an article page lives and what to strip from it."""
    content_selectors: Tuple[str, ...] = ()
    exclude_selectors: Tuple[str, ...] = ()


class FetchStrategy(ABC):
    """
    How the articles of a source are obtained.

    Implementations raise AggregatorError subclasses for source-level failures
    and report per-item problems in the returned FetchBatch.
    """

    kind: FetchStrategyKind
    content_rules: ContentRules = ContentRules()

    @abstractmethod
    async def fetch(self, info: SourceInfo, client: HttpClient) -> FetchBatch:
        """
        Fetch and parse the articles of one source.

        Args:
            info: Source being fetched
            client: Open HTTP client shared by the run

        Returns:
            Parsed articles and the items that were skipped

        Raises:
            NetworkError: Transport failure or timeout
            ParseError: Document could not be parsed at all
            AuthError: Authentication failed
        """
        pass

    async def login(self, info: SourceInfo, client: HttpClient) -> Optional[Session]:
        """Obtain an authentication session. Sources without login return None."""
        return None

    async def parse_article(self,
                            info: SourceInfo,
                            client: HttpClient,
                            url: str,
                            cookies: Optional[Mapping[str, str]] = None) -> ExtractedContent:
        """
        Fetch one article page and extract its body.

        Raises:
            NetworkError: If the page cannot be fetched
            ParseError: If no body text could be extracted
        """
        response = ensure_success(await client.get(url, info.name, cookies=cookies), info.name)
        content = extract_article(
            response.text,
            response.url,
            content_selectors=self.content_rules.content_selectors,
            exclude_selectors=self.content_rules.exclude_selectors
        )
        if not content.ok:
            raise ParseError(info.name, 'article', f"no content extracted from {url}")
        return content


class SourceAdapter:
    """A configured source: what it is plus how to fetch it."""

    def __init__(self, info: SourceInfo, strategy: FetchStrategy, timeout: int = 10):
        """
        Initialize source adapter.

        Args:
            info: Source metadata
            strategy: Fetch strategy matching info.strategy
            timeout: Request timeout for standalone calls and health checks
        """
        if strategy.kind != info.strategy:
            raise ConfigurationError(
                f"{info.name}.strategy",
                f"declared {info.strategy.value} but got a {strategy.kind.value} strategy"
            )
        self.info = info
        self.strategy = strategy
        self.timeout = timeout

    def name(self) -> str:
        return self.info.name

    def source_url(self) -> str:
        return self.info.url

    def domain(self) -> str:
        return self.info.domain

    def strategy_kind(self) -> FetchStrategyKind:
        return self.info.strategy

    async def fetch_articles(self, client: Optional[HttpClient] = None) -> FetchBatch:
        """
        Fetch the current articles of this source.

        Args:
            client: Shared HTTP client; a private one is opened when omitted

        Raises:
            AggregatorError: Source-level failure
        """
        if client is not None:
            return await self.strategy.fetch(self.info, client)

        async with HttpClient(timeout=self.timeout) as own_client:
            return await self.strategy.fetch(self.info, own_client)

    async def login(self, client: Optional[HttpClient] = None) -> Optional[Session]:
        """
        Log in to the source if it requires authentication.

        Returns:
            The active Session, or None for sources without login
        """
        if client is not None:
            return await self.strategy.login(self.info, client)

        async with HttpClient(timeout=self.timeout) as own_client:
            return await self.strategy.login(self.info, own_client)

    async def parse_article(self, url: str, client: Optional[HttpClient] = None) -> ExtractedContent:
        """
        Extract the body of one article of this source.

        Raises:
            AggregatorError: If the page cannot be fetched or has no content
        """
        if client is not None:
            return await self.strategy.parse_article(self.info, client, url)

        async with HttpClient(timeout=self.timeout) as own_client:
            return await self.strategy.parse_article(self.info, own_client, url)

    def health_check(self) -> Dict[str, Any]:
        """
        Check if the source URL is reachable.

        Returns:
            Health status dictionary
        """
        try:
            response = requests.head(self.info.url, timeout=self.timeout, allow_redirects=True)
            return {
                'source': self.info.name,
                'available': response.status_code < 400,
                'status_code': response.status_code,
                'response_time_ms': response.elapsed.total_seconds() * 1000
            }
        except requests.RequestException as e:
            logger.warning(f"Health check failed for {self.info.name}: {e}")
            return {
                'source': self.info.name,
                'available': False,
                'error': str(e)
            }

    def __repr__(self):
        return f"SourceAdapter(name='{self.info.name}', strategy='{self.info.strategy.value}')"

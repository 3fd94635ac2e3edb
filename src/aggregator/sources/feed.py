#!/usr/bin/env python3
"""
RSS and Atom feed fetching.

Handles RSS 0.9x/1.0 (RDF)/2.0 and Atom through feedparser. A feed that cannot
be parsed at all fails the source; a single broken entry is skipped and
reported.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

import feedparser
import pytz
from dateutil import parser as date_parser

from ..exceptions import ContractViolation, NetworkError, ParseError
from ..models.article import Article, strip_cdata
from ..models.results import FetchBatch, ItemError
from ..models.source import FetchStrategyKind, SourceInfo
from .base import ContentRules, FetchStrategy
from .http import HttpClient, ensure_success

logger = logging.getLogger(__name__)

DATE_FIELDS = ('published', 'updated', 'created')


class FeedStrategy(FetchStrategy):
    """Fetch a feed document and turn every entry into an article."""

    kind = FetchStrategyKind.FEED

    def __init__(self,
                 max_entries: Optional[int] = None,
                 content_rules: Optional[ContentRules] = None,
                 fetch_content: bool = False,
                 request_delay: float = 0.0):
        """
        Initialize feed strategy.

        Args:
            max_entries: Only keep the first N entries of the feed
            content_rules: Body selectors for the linked article pages
            fetch_content: Also fetch every entry's page and extract its body
            request_delay: Pause between article page requests
        """
        self.max_entries = max_entries
        self.content_rules = content_rules or ContentRules()
        self.fetch_content = fetch_content
        self.request_delay = request_delay

    async def fetch(self, info: SourceInfo, client: HttpClient) -> FetchBatch:
        logger.info(f"Fetching feed from: {info.url}")
        response = ensure_success(await client.get(info.url, info.name), info.name)
        batch = self.parse_feed(info, response.body or response.text)

        if self.fetch_content and batch.articles:
            batch = await self._attach_content(info, client, batch)
        return batch

    async def _attach_content(self, info: SourceInfo, client: HttpClient, batch: FetchBatch) -> FetchBatch:
        """
        Add extracted bodies to feed articles.

        An entry whose page cannot be fetched or extracted keeps its feed data
        and is reported as an item error.
        """
        articles: List[Article] = []
        item_errors: List[ItemError] = list(batch.item_errors)

        for index, article in enumerate(batch.articles):
            if index > 0 and self.request_delay > 0:
                await asyncio.sleep(self.request_delay)
            try:
                content = await self.parse_article(info, client, article.url)
            except (NetworkError, ParseError) as e:
                logger.warning(f"No body for {article.url} from {info.name}: {e.message}")
                item_errors.append(ItemError.from_exception(info.name, e, article.url))
                articles.append(article)
                continue
            articles.append(replace(article, text=content.text, html=content.html))

        return FetchBatch(articles=tuple(articles), item_errors=tuple(item_errors))

    def parse_feed(self, info: SourceInfo, content: Union[bytes, str], fetched_at: Optional[datetime] = None) -> FetchBatch:
        """
        Parse a feed document into articles.

        Args:
            info: Source the document belongs to
            content: Raw feed document; bytes let feedparser honour the XML encoding declaration
            fetched_at: Fetch time used for entries without a date

        Raises:
            ParseError: If the document is not a parseable feed
        """
        feed = feedparser.parse(content)
        entries = list(feed.entries)

        if feed.bozo and not entries:
            raise ParseError(info.name, 'feed', str(getattr(feed, 'bozo_exception', 'malformed document')))
        if not feed.get('version') and not entries:
            raise ParseError(info.name, 'feed', 'document is not an RSS or Atom feed')
        if feed.bozo:
            logger.warning(f"Feed parsing warning for {info.name}: {feed.bozo_exception}")

        if self.max_entries is not None:
            entries = entries[:self.max_entries]

        logger.info(f"Found {len(entries)} entries in {info.name} feed")

        fetched_at = fetched_at or datetime.now(timezone.utc)
        articles: List[Article] = []
        item_errors: List[ItemError] = []
        seen_urls = set()

        for index, entry in enumerate(entries):
            item_ref = entry.get('link') or entry.get('title') or f"entry #{index}"
            try:
                article = self._parse_entry(info, entry, fetched_at)
            except (ParseError, ContractViolation) as e:
                logger.warning(f"Skipping entry from {info.name}: {e.message}")
                item_errors.append(ItemError.from_exception(info.name, e, item_ref))
                continue

            if article.url in seen_urls:
                logger.debug(f"Dropping repeated entry {article.url} from {info.name}")
                continue
            seen_urls.add(article.url)
            articles.append(article)

        return FetchBatch(articles=tuple(articles), item_errors=tuple(item_errors))

    def _parse_entry(self, info: SourceInfo, entry: Any, fetched_at: datetime) -> Article:
        title = strip_cdata(entry.get('title') or '').strip()
        link = (entry.get('link') or '').strip()

        if not link:
            raise ParseError(info.name, 'entry', f"entry '{title[:60]}' has no link")
        if not title:
            raise ParseError(info.name, 'entry', f"entry {link} has no title")

        return Article.create(
            source_name=info.name,
            url=link,
            title=info.clean_title(title),
            published=self._parse_published_date(info, entry),
            fetched_at=fetched_at,
            summary=self._extract_summary(entry),
            source_domain=info.domain
        )

    def _parse_published_date(self, info: SourceInfo, entry: Any) -> Optional[datetime]:
        """
        Parse the entry date, trying published, updated and created in turn.

        Returns None when the entry carries no date at all.

        Raises:
            ParseError: If a date is present but cannot be parsed
        """
        unparsed = None

        for field in DATE_FIELDS:
            date_str = entry.get(field)
            if not date_str:
                continue

            try:
                dt = date_parser.parse(date_str)
                if dt.tzinfo is None:
                    dt = pytz.utc.localize(dt)
                return dt.astimezone(pytz.utc)
            except (ValueError, OverflowError) as e:
                logger.debug(f"Failed to parse date '{date_str}': {e}")

            # feedparser understands a few formats dateutil does not
            parsed = entry.get(f'{field}_parsed')
            if parsed:
                return pytz.utc.localize(datetime(*parsed[:6]))

            unparsed = unparsed or date_str

        if unparsed is not None:
            raise ParseError(info.name, 'entry date', f"unparseable date {unparsed!r}")
        return None

    @staticmethod
    def _extract_summary(entry: Any) -> str:
        summary = entry.get('summary') or entry.get('description') or ''
        if not summary and entry.get('content'):
            summary = entry['content'][0].get('value', '')
        return summary

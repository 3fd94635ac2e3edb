#!/usr/bin/env python3
"""
HTML listing scraper.

Fetches a listing page, follows the article links a CSS selector finds on it,
and extracts each linked page into an article.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Mapping, NamedTuple, Optional, Tuple

from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from soupsieve import SelectorSyntaxError

from ..content.extractor import extract_article, parse_html
from ..exceptions import ContractViolation, NetworkError, ParseError
from ..models.article import Article, ensure_utc, normalize_whitespace
from ..models.results import FetchBatch, ItemError
from ..models.source import FetchStrategyKind, SourceInfo
from ..urls import canonicalize_url, domain_of, is_valid_url, resolve_url
from .base import ContentRules, FetchStrategy
from .http import HttpClient, HttpResponse, ensure_success

logger = logging.getLogger(__name__)

ResponseCheck = Callable[[HttpResponse, str], HttpResponse]


@dataclass(frozen=True)
class ScrapeRules:
    """Per-site scraping configuration. Pure data."""
    link_selector: str
    listing_url: str = ""
    title_selector: Optional[str] = None
    date_selector: Optional[str] = None
    content_selectors: Tuple[str, ...] = ()
    exclude_selectors: Tuple[str, ...] = ()
    max_articles: int = 20
    request_delay: float = 0.0
    allow_offsite: bool = False


class ListingLink(NamedTuple):
    url: str
    text: str


class ScrapeStrategy(FetchStrategy):
    """Scrape articles linked from an HTML listing page."""

    kind = FetchStrategyKind.SCRAPE

    def __init__(self, rules: ScrapeRules):
        self.rules = rules
        self.content_rules = ContentRules(rules.content_selectors, rules.exclude_selectors)

    async def fetch(self, info: SourceInfo, client: HttpClient) -> FetchBatch:
        return await self.scrape(info, client)

    async def scrape(self,
                     info: SourceInfo,
                     client: HttpClient,
                     cookies: Optional[Mapping[str, str]] = None,
                     check_response: ResponseCheck = ensure_success) -> FetchBatch:
        """
        Fetch the listing and every linked article page.

        Args:
            info: Source being scraped
            client: Open HTTP client
            cookies: Cookies to send with every request
            check_response: Validates each response, raising on failure

        Raises:
            NetworkError: If the listing or every article page cannot be fetched
            AuthError: If a response shows the session is not accepted
            ParseError: If the listing has no matching links
        """
        listing_url = self.rules.listing_url or info.url
        logger.info(f"Scraping listing page: {listing_url}")
        listing = check_response(await client.get(listing_url, info.name, cookies=cookies), info.name)

        links = self.extract_links(info, listing.text, listing.url)
        logger.info(f"Found {len(links)} article links on {info.name}")

        articles: List[Article] = []
        item_errors: List[ItemError] = []
        fetched_at = datetime.now(timezone.utc)
        network_errors: List[NetworkError] = []

        for index, link in enumerate(links):
            if index > 0 and self.rules.request_delay > 0:
                await asyncio.sleep(self.rules.request_delay)

            try:
                page = check_response(await client.get(link.url, info.name, cookies=cookies), info.name)
            except NetworkError as e:
                # AuthError is not a NetworkError and still fails the source
                logger.warning(f"Could not fetch article {link.url} from {info.name}: {e.message}")
                item_errors.append(ItemError.from_exception(info.name, e, link.url))
                network_errors.append(e)
                continue

            try:
                articles.append(self.build_article(info, page.text, link, fetched_at))
            except (ParseError, ContractViolation) as e:
                logger.warning(f"Skipping article {link.url} from {info.name}: {e.message}")
                item_errors.append(ItemError.from_exception(info.name, e, link.url))

        if network_errors and len(network_errors) == len(links):
            # Not a single page could be fetched
            raise network_errors[-1]

        return FetchBatch(articles=tuple(articles), item_errors=tuple(item_errors))

    def extract_links(self, info: SourceInfo, html: str, base_url: str) -> List[ListingLink]:
        """
        Find article links on a listing page.

        Relative links are resolved, duplicates and off-site links dropped,
        and the result capped at max_articles.

        Raises:
            ParseError: If the selector matches nothing
        """
        soup = parse_html(html)
        try:
            anchors = soup.select(self.rules.link_selector)
        except (SelectorSyntaxError, NotImplementedError) as e:
            raise ParseError(info.name, 'listing', f"invalid link selector '{self.rules.link_selector}': {e}")

        if not anchors:
            raise ParseError(info.name, 'listing', f"no elements match '{self.rules.link_selector}'")

        links: List[ListingLink] = []
        seen = set()
        site_domain = info.domain

        for anchor in anchors:
            if anchor.name != 'a':
                anchor = anchor.find('a', href=True)
                if anchor is None:
                    continue

            href = (anchor.get('href') or '').strip()
            if not href or href.startswith(('#', 'javascript:', 'mailto:')):
                continue

            url = resolve_url(base_url, href)
            if not is_valid_url(url):
                continue
            if not self.rules.allow_offsite and not _same_site(domain_of(url), site_domain):
                logger.debug(f"Skipping off-site link {url} on {info.name}")
                continue

            canonical = canonicalize_url(url)
            if canonical in seen:
                continue
            seen.add(canonical)

            links.append(ListingLink(url=url, text=normalize_whitespace(anchor.get_text(' '))))
            if len(links) >= self.rules.max_articles:
                break

        return links

    def build_article(self,
                      info: SourceInfo,
                      html: str,
                      link: ListingLink,
                      fetched_at: Optional[datetime] = None) -> Article:
        """
        Build an article from a fetched page.

        Raises:
            ParseError: If no body text could be extracted
            ContractViolation: If no usable title was found
        """
        content = extract_article(
            html,
            link.url,
            content_selectors=self.rules.content_selectors,
            exclude_selectors=self.rules.exclude_selectors
        )
        if not content.ok:
            raise ParseError(info.name, 'article', f"no content extracted from {link.url}")

        soup = parse_html(html)
        title = self._extract_title(soup) or content.title or link.text
        published = self._extract_date(soup) or _parse_date(content.published)

        return Article.create(
            source_name=info.name,
            url=link.url,
            title=info.clean_title(title),
            published=published,
            fetched_at=fetched_at,
            summary=content.text[:300],
            text=content.text,
            html=content.html,
            source_domain=info.domain
        )

    def _extract_title(self, soup: BeautifulSoup) -> str:
        if self.rules.title_selector:
            element = soup.select_one(self.rules.title_selector)
            if element is not None and element.get_text(strip=True):
                return element.get_text(' ', strip=True)

        og_title = soup.find('meta', attrs={'property': 'og:title'})
        if og_title is not None and og_title.get('content'):
            return og_title['content']

        heading = soup.find('h1')
        if heading is not None and heading.get_text(strip=True):
            return heading.get_text(' ', strip=True)

        return ''

    def _extract_date(self, soup: BeautifulSoup) -> Optional[datetime]:
        if self.rules.date_selector:
            element = soup.select_one(self.rules.date_selector)
            if element is not None:
                published = _parse_date(element.get('datetime') or element.get_text(strip=True))
                if published is not None:
                    return published

        meta = soup.find('meta', attrs={'property': 'article:published_time'})
        if meta is not None:
            return _parse_date(meta.get('content'))

        time_element = soup.find('time', attrs={'datetime': True})
        if time_element is not None:
            return _parse_date(time_element['datetime'])

        return None


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return ensure_utc(date_parser.parse(value))
    except (ValueError, OverflowError) as e:
        logger.debug(f"Failed to parse date '{value}': {e}")
        return None


def _same_site(link_domain: str, site_domain: str) -> bool:
    """Same host, or a subdomain of the source's registrable host."""
    link_domain = link_domain[4:] if link_domain.startswith('www.') else link_domain
    site_domain = site_domain[4:] if site_domain.startswith('www.') else site_domain
    return link_domain == site_domain or link_domain.endswith('.' + site_domain)

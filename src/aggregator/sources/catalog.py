#!/usr/bin/env python3
"""
Built-in source catalog.

Every site is plain data handed to one of the three factories below. Adding a
site never needs new code, only a new entry.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..models.source import FetchStrategyKind, SourceInfo
from ..session_store import SessionStore
from .authenticated import AuthenticatedScrapeStrategy, Credentials, LoginForm
from .base import ContentRules, SourceAdapter
from .feed import FeedStrategy
from .scrape import ScrapeRules, ScrapeStrategy

logger = logging.getLogger(__name__)


def feed_source(name: str,
                url: str,
                content_selectors: Sequence[str] = (),
                exclude_selectors: Sequence[str] = (),
                fetch_content: bool = False,
                max_entries: Optional[int] = None,
                request_delay: float = 0.0,
                timeout: int = 10,
                **info_fields: Any) -> SourceAdapter:
    """Build a feed-based source."""
    info = SourceInfo(name=name, url=url, strategy=FetchStrategyKind.FEED, **info_fields)
    strategy = FeedStrategy(
        max_entries=max_entries,
        content_rules=ContentRules(tuple(content_selectors), tuple(exclude_selectors)),
        fetch_content=fetch_content,
        request_delay=request_delay
    )
    return SourceAdapter(info, strategy, timeout=timeout)


def scrape_source(name: str,
                  url: str,
                  rules: ScrapeRules,
                  timeout: int = 10,
                  **info_fields: Any) -> SourceAdapter:
    """Build an HTML-scraped source."""
    info = SourceInfo(name=name, url=url, strategy=FetchStrategyKind.SCRAPE, **info_fields)
    return SourceAdapter(info, ScrapeStrategy(rules), timeout=timeout)


def authenticated_source(name: str,
                         url: str,
                         rules: ScrapeRules,
                         login_form: LoginForm,
                         session_store: SessionStore,
                         credentials: Optional[Credentials],
                         timeout: int = 10,
                         **info_fields: Any) -> SourceAdapter:
    """Build a scraped source that requires a login."""
    info = SourceInfo(name=name, url=url, strategy=FetchStrategyKind.AUTHENTICATED_SCRAPE, **info_fields)
    strategy = AuthenticatedScrapeStrategy(
        scraper=ScrapeStrategy(rules),
        login_form=login_form,
        session_store=session_store,
        credentials=credentials
    )
    return SourceAdapter(info, strategy, timeout=timeout)


FEED_SITES: List[Dict[str, Any]] = [
    {
        'name': 'AI-Now',
        'url': 'https://ainow.ai/feed/',
        'language': 'ja',
        'categories': ('ai',),
        'content_selectors': ('body div.contents div.article_area div.entry-content',),
    },
    {
        'name': 'AI News',
        'url': 'https://ai-news.dev/feeds/',
        'language': 'ja',
        'categories': ('ai',),
    },
    {
        'name': 'AIZINE',
        'url': 'https://otafuku-lab.co/aizine/feed/',
        'language': 'ja',
        'categories': ('ai',),
        'content_selectors': ('#main article div.entry-content',),
    },
    {
        'name': 'Cookpad Techblog',
        'url': 'https://techlife.cookpad.com/rss',
        'language': 'ja',
        'categories': ('engineering',),
        'content_selectors': ('#main article div.entry-content',),
    },
    {
        'name': 'DeNA Engineering Blog',
        'url': 'https://engineering.dena.com/index.xml',
        'language': 'ja',
        'categories': ('engineering',),
        'content_selectors': ('main article section.content-box',),
    },
    {
        'name': 'Gigazine',
        'url': 'https://gigazine.net/news/rss_2.0/',
        'language': 'ja',
        'categories': ('technology',),
        'content_selectors': ('#article div.cntimage',),
        'exclude_selectors': ('.bnrbox', '.cntbnr', '.relatedarticle', '.amazonbox', '.rakutenbox'),
    },
    {
        'name': 'GREE Techblog',
        'url': 'https://labs.gree.jp/blog/feed',
        'language': 'ja',
        'categories': ('engineering',),
        'content_selectors': ('div.site-body article div.entry-body',),
    },
    {
        'name': '@IT',
        'url': 'https://rss.itmedia.co.jp/rss/2.0/ait.xml',
        'domain': 'atmarkit.itmedia.co.jp',
        'language': 'ja',
        'categories': ('technology',),
        'content_selectors': ('#cmsBody div.inner',),
        'exclude_selectors': ('.premium-info', '.premium-banner', '.article-rating', '.feedback',
                              '.newsletter', '.member-banner', '.read-more', '.colBoxPremium'),
    },
    {
        'name': 'ITmedia Executive',
        'url': 'https://rss.itmedia.co.jp/rss/2.0/executive.xml',
        'domain': 'mag.executive.itmedia.co.jp',
        'language': 'ja',
        'categories': ('business',),
        'content_selectors': ('#cmsBody div.inner',),
        'exclude_selectors': ('.premium-info', '.premium-banner', '.article-rating', '.feedback',
                              '.newsletter', '.member-banner', '.read-more', '.colBoxPremium'),
    },
    {
        'name': 'Mercari Engineering Blog',
        'url': 'https://engineering.mercari.com/blog/feed.xml',
        'language': 'ja',
        'categories': ('engineering',),
        'content_selectors': ('div.page-content', 'main div.page-content'),
    },
    {
        'name': 'Nikkei XTech',
        'url': 'https://xtech.nikkei.com/rss/index.rdf',
        'language': 'ja',
        'categories': ('technology', 'business'),
        'content_selectors': ('div.article_body', 'article.article div.articleBody',
                              'article.p-article .p-article_body'),
    },
    {
        'name': 'Retrieva Techblog',
        'url': 'https://retrieva.jp/news/feed/',
        'language': 'ja',
        'categories': ('ai', 'engineering'),
        'content_selectors': ('#content article div.entry-content',),
    },
    {
        'name': 'Rust Blog',
        'url': 'https://blog.rust-lang.org/feed.xml',
        'categories': ('programming',),
        'content_selectors': ('section div.post',),
    },
    {
        'name': 'TechCrunch',
        'url': 'https://techcrunch.com/feed/',
        'categories': ('technology', 'startups'),
        'content_selectors': ('main div.entry-content',),
    },
    {
        'name': 'UTokyo Engineering',
        'url': 'https://www.t.u-tokyo.ac.jp/press/rss.xml',
        'language': 'ja',
        'categories': ('academic',),
        'content_selectors': ('div.blog-body-1__content', 'div.bl_wysiwyg'),
    },
    {
        'name': 'Trend Micro Security Advisories',
        'url': 'http://feeds.trendmicro.com/jp/SecurityAdvisories',
        'language': 'ja',
        'categories': ('security',),
        'content_selectors': ('section.TEArticle div.articleContainer',),
    },
]

ZENN_TOPICS = ('ai', 'llm', 'rust', 'python')

ZENN_EXCLUDE_SELECTORS = ('.LikeButton', '.BookmarkButton', '.AuthorProfile', '.SupportButton')

SCRAPE_SITES: List[Dict[str, Any]] = [
    {
        'name': 'AI-SCHOLAR',
        'url': 'https://ai-scholar.tech/',
        'language': 'ja',
        'categories': ('ai', 'academic'),
        'rules': ScrapeRules(
            link_selector='section.indexlists article.list-item a',
            date_selector='time',
            content_selectors=('article div.p-article__body', 'main article'),
        ),
    },
    {
        'name': 'Stockmark Techblog',
        'url': 'https://stockmark-tech.hatenablog.com/',
        'language': 'ja',
        'categories': ('ai', 'engineering'),
        'rules': ScrapeRules(
            link_selector='div.archive-entry-header h1 a',
            title_selector='h1.entry-title',
            date_selector='time',
            content_selectors=('div.entry-content',),
        ),
    },
    {
        'name': 'Supership',
        'url': 'https://supership.jp/news/',
        'language': 'ja',
        'categories': ('business',),
        'rules': ScrapeRules(
            link_selector='ul.p-magazine__archive li.p-magazine__card a',
            date_selector='time',
            content_selectors=('main article',),
        ),
    },
]

MEDIUM_TAGS = ('artificial-intelligence', 'rust')

# Sites behind a login; only registered when <credentials_prefix>_USERNAME
# and <credentials_prefix>_PASSWORD are set
AUTHENTICATED_SITES: List[Dict[str, Any]] = [
    {
        'name': 'Nikkei XTech Members',
        'url': 'https://xtech.nikkei.com/top/it/',
        'language': 'ja',
        'categories': ('technology', 'business'),
        'credentials_prefix': 'NIKKEI_XTECH',
        'rules': ScrapeRules(
            link_selector='ul.p-articleList li a',
            content_selectors=('div.article_body', 'article.p-article .p-article_body'),
        ),
        'login_form': LoginForm(
            login_url='https://xtech.nikkei.com/login',
            username_field='email',
            password_field='password',
            login_marker_selector='form[action*="login"] input[type="password"]',
            failure_selector='.login-error',
        ),
    },
]


def zenn_topic_source(topic: str, **kwargs: Any) -> SourceAdapter:
    """Zenn publishes one feed per topic."""
    return feed_source(
        f"Zenn ({topic})",
        f"https://zenn.dev/topics/{topic}/feed",
        content_selectors=('article section',),
        exclude_selectors=ZENN_EXCLUDE_SELECTORS,
        language='ja',
        categories=('engineering', topic),
        **kwargs
    )


def medium_tag_source(tag: str, **kwargs: Any) -> SourceAdapter:
    """Medium tag archives have no feed and are scraped."""
    rules = ScrapeRules(
        link_selector='article div a[href]',
        title_selector='h1',
        content_selectors=('article section',),
        max_articles=kwargs.pop('max_articles', 20),
        request_delay=kwargs.pop('request_delay', 0.0)
    )
    return scrape_source(
        f"Medium ({tag})",
        f"https://medium.com/tag/{tag}/archive",
        rules,
        categories=(tag,),
        **kwargs
    )

import asyncio
import os
import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Also add the project root to handle absolute imports
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from aggregator.config import AggregatorConfig, DedupConfig, RunConfig, reset_config  # noqa: E402
from aggregator.exceptions import NetworkError  # noqa: E402
from aggregator.models.article import Article  # noqa: E402
from aggregator.models.results import FetchBatch  # noqa: E402
from aggregator.models.source import FetchStrategyKind, SourceInfo  # noqa: E402
from aggregator.sources.base import FetchStrategy, SourceAdapter  # noqa: E402
from aggregator.sources.http import HttpResponse  # noqa: E402

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def make_response(url: str,
                  text: str = "",
                  status: int = 200,
                  cookies: Optional[Dict[str, str]] = None,
                  final_url: Optional[str] = None,
                  body: Optional[bytes] = None) -> HttpResponse:
    return HttpResponse(
        url=final_url or url,
        status=status,
        text=text,
        body=text.encode("utf-8") if body is None else body,
        cookies=dict(cookies or {}),
        requested_url=url
    )


class FakeHttpClient:
    """
    In-memory stand-in for HttpClient.

    Routes map a URL to an HttpResponse, an exception to raise, a list of
    outcomes served in order (the last one repeats), or a callable taking the
    request cookies.
    """

    def __init__(self,
                 routes: Optional[Dict[str, Any]] = None,
                 post_routes: Optional[Dict[str, Any]] = None,
                 delay: float = 0.0) -> None:
        self.routes = dict(routes or {})
        self.post_routes = dict(post_routes or {})
        self.delay = delay
        self.calls: List[Tuple[str, str, Dict[str, str], Optional[Dict[str, str]]]] = []
        self.entered = 0

    async def __aenter__(self) -> "FakeHttpClient":
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    async def get(self, url: str, source_name: str = "", cookies: Optional[Mapping[str, str]] = None) -> HttpResponse:
        self.calls.append(("GET", url, dict(cookies or {}), None))
        return await self._respond(self.routes, url, source_name, cookies)

    async def post_form(self,
                        url: str,
                        data: Mapping[str, str],
                        source_name: str = "",
                        cookies: Optional[Mapping[str, str]] = None) -> HttpResponse:
        self.calls.append(("POST", url, dict(cookies or {}), dict(data)))
        return await self._respond(self.post_routes, url, source_name, cookies)

    async def _respond(self, routes: Dict[str, Any], url: str, source_name: str,
                       cookies: Optional[Mapping[str, str]]) -> HttpResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        if url not in routes:
            raise NetworkError(source_name, url, "connection refused")

        outcome = routes[url]
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(dict(cookies or {}))
        return outcome

    def count(self, method: str, url: Optional[str] = None) -> int:
        return sum(1 for call in self.calls if call[0] == method and (url is None or call[1] == url))


class StubStrategy(FetchStrategy):
    """Strategy returning canned articles, raising, or hanging."""

    kind = FetchStrategyKind.FEED

    def __init__(self, outcome: Any = (), delay: float = 0.0) -> None:
        self.outcome = outcome
        self.delay = delay
        self.calls = 0

    async def fetch(self, info: SourceInfo, client: Any) -> FetchBatch:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return FetchBatch(articles=tuple(self.outcome))


def article_at(source_name: str,
               title: str,
               minutes: float = 0,
               url: Optional[str] = None,
               domain: Optional[str] = None) -> Article:
    slug = re.sub(r"\W+", "-", title.lower()).strip("-") or "untitled"
    domain = domain or f"{source_name.lower().replace(' ', '-')}.example.com"
    return Article.create(
        source_name=source_name,
        url=url or f"https://{domain}/articles/{slug}-{int(minutes)}",
        title=title,
        published=BASE_TIME + timedelta(minutes=minutes),
        fetched_at=BASE_TIME + timedelta(hours=6),
        source_domain=domain
    )


def rss_document(items: Sequence[Dict[str, str]], title: str = "Example Feed") -> str:
    rendered = []
    for item in items:
        fields = "".join(f"<{tag}>{value}</{tag}>" for tag, value in item.items())
        rendered.append(f"<item>{fields}</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{title}</title><link>https://news.example.com/</link>"
        "<description>Example</description>"
        f"{''.join(rendered)}"
        "</channel></rss>"
    )


def article_page(title: str, body: str, published: str = "2024-05-01T10:00:00+00:00") -> str:
    return (
        "<html><head>"
        f'<meta property="og:title" content="{title}">'
        f'<meta property="article:published_time" content="{published}">'
        "</head><body>"
        "<nav><a href='/'>Home</a></nav>"
        f'<div class="article-body"><p>{body}</p><div class="share-buttons">Share</div></div>'
        "<footer>Copyright</footer>"
        "</body></html>"
    )


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    for key in [key for key in os.environ if key.startswith("AGG_")]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def fake_client_factory() -> Callable[..., FakeHttpClient]:
    def _factory(routes: Optional[Dict[str, Any]] = None,
                 post_routes: Optional[Dict[str, Any]] = None,
                 delay: float = 0.0) -> FakeHttpClient:
        return FakeHttpClient(routes, post_routes, delay)

    return _factory


@pytest.fixture
def stub_source_factory() -> Callable[..., SourceAdapter]:
    def _factory(name: str, outcome: Any = (), delay: float = 0.0) -> SourceAdapter:
        info = SourceInfo(
            name=name,
            url=f"https://{name.lower().replace(' ', '-')}.example.com/feed",
            strategy=FetchStrategyKind.FEED
        )
        return SourceAdapter(info, StubStrategy(outcome, delay))

    return _factory


@pytest.fixture
def fast_config() -> AggregatorConfig:
    return AggregatorConfig(
        run=RunConfig(
            max_concurrent_sources=4,
            source_timeout=1.0,
            run_deadline=5.0,
            request_delay=0.0,
            max_articles_per_source=20
        ),
        dedup=DedupConfig(similarity_threshold=0.85, window_minutes=180, cross_source_only=True)
    )

#!/usr/bin/env python3
"""
Async HTTP transport shared by all sources in a run.

One aiohttp session per run with a hard cap on simultaneous requests. The
session's cookie jar is disabled: cookies only travel when a source passes
them explicitly from its authentication session.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import aiohttp

from ..config import DEFAULT_USER_AGENT
from ..exceptions import NetworkError, SourceTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """A fully read HTTP response."""
    url: str
    status: int
    text: str
    cookies: Dict[str, str] = field(default_factory=dict)
    requested_url: str = ""
    # Undecoded body; XML documents carry their own encoding declaration
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


class HttpClient:
    """Async HTTP client with bounded concurrency."""

    def __init__(self,
                 timeout: float = 20,
                 max_connections: int = 10,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        Initialize HTTP client.

        Args:
            timeout: Per-request timeout in seconds
            max_connections: Maximum simultaneous requests across all sources
            user_agent: User-Agent header value
        """
        self.timeout = timeout
        self.max_connections = max_connections
        self.user_agent = user_agent
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._semaphore = asyncio.Semaphore(self.max_connections)
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={
                'User-Agent': self.user_agent,
                'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8'
            },
            cookie_jar=aiohttp.DummyCookieJar()
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get(self,
                  url: str,
                  source_name: str = "",
                  cookies: Optional[Mapping[str, str]] = None) -> HttpResponse:
        """
        GET a URL and read the body.

        Raises:
            SourceTimeoutError: If the request timed out
            NetworkError: On any transport failure
        """
        return await self._request('GET', url, source_name, cookies=cookies)

    async def post_form(self,
                        url: str,
                        data: Mapping[str, str],
                        source_name: str = "",
                        cookies: Optional[Mapping[str, str]] = None) -> HttpResponse:
        """POST form data (used for logins) and read the body."""
        return await self._request('POST', url, source_name, cookies=cookies, data=dict(data))

    async def _request(self,
                       method: str,
                       url: str,
                       source_name: str,
                       cookies: Optional[Mapping[str, str]] = None,
                       data: Optional[Dict[str, str]] = None) -> HttpResponse:
        if not self._session or not self._semaphore:
            raise RuntimeError("HttpClient must be used as async context manager")

        headers = {}
        if cookies:
            headers['Cookie'] = '; '.join(f"{name}={value}" for name, value in cookies.items())

        async with self._semaphore:
            try:
                logger.debug(f"{method} {url}")
                async with self._session.request(method, url, headers=headers, data=data) as response:
                    body = await response.read()
                    text = await response.text(errors='replace')
                    return HttpResponse(
                        url=str(response.url),
                        status=response.status,
                        text=text,
                        body=body,
                        cookies=self._collect_cookies(response),
                        requested_url=url
                    )
            except asyncio.TimeoutError:
                logger.error(f"Timeout fetching {url}")
                raise SourceTimeoutError(source_name, self.timeout, url)
            except aiohttp.ClientError as e:
                logger.error(f"HTTP error fetching {url}: {e}")
                raise NetworkError(source_name, url, str(e) or type(e).__name__)

    @staticmethod
    def _collect_cookies(response: aiohttp.ClientResponse) -> Dict[str, str]:
        """Cookies set anywhere along the redirect chain, last one wins."""
        cookies: Dict[str, str] = {}
        for hop in list(response.history) + [response]:
            for name, morsel in hop.cookies.items():
                cookies[name] = morsel.value
        return cookies


def ensure_success(response: HttpResponse, source_name: str) -> HttpResponse:
    """Raise NetworkError for 4xx/5xx responses."""
    if response.status >= 400:
        raise NetworkError(source_name, response.requested_url or response.url,
                           f"HTTP {response.status}", status=response.status)
    return response

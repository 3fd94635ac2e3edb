#!/usr/bin/env python3
"""
Scraping for sources behind a login.

Logs in through the shared SessionStore, sends the session cookies on every
request and re-authenticates once when the site rejects the session.
"""

import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from ..content.extractor import ExtractedContent, parse_html
from ..env_loader import get_credentials
from ..exceptions import AuthError
from ..models.results import FetchBatch
from ..models.session import Session
from ..models.source import FetchStrategyKind, SourceInfo
from ..session_store import SessionStore
from .base import FetchStrategy
from .http import HttpClient, HttpResponse, ensure_success
from .scrape import ResponseCheck, ScrapeStrategy

logger = logging.getLogger(__name__)

AUTH_STATUSES = (401, 403)


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    @classmethod
    def from_env(cls, prefix: str) -> Optional['Credentials']:
        """Load credentials from <PREFIX>_USERNAME / <PREFIX>_PASSWORD."""
        pair = get_credentials(prefix)
        if pair is None:
            return None
        return cls(*pair)

    def __repr__(self):
        return f"Credentials(username='{self.username}', password='***')"


@dataclass(frozen=True)
class LoginForm:
    """
    How to log in to a site and how to tell that a session was rejected.

    login_marker_selector matches something only a logged-out page shows
    (a login form, a paywall banner). failure_selector matches an error
    message on the page returned by a rejected login.
    """
    login_url: str
    username_field: str = 'username'
    password_field: str = 'password'
    extra_fields: Mapping[str, str] = field(default_factory=dict)
    login_marker_selector: Optional[str] = None
    failure_selector: Optional[str] = None
    session_cookie: Optional[str] = None


class AuthenticatedScrapeStrategy(FetchStrategy):
    """Scrape a listing with session cookies obtained from a login form."""

    kind = FetchStrategyKind.AUTHENTICATED_SCRAPE

    def __init__(self,
                 scraper: ScrapeStrategy,
                 login_form: LoginForm,
                 session_store: SessionStore,
                 credentials: Optional[Credentials] = None):
        """
        Initialize authenticated strategy.

        Args:
            scraper: Scraper that does the actual page work
            login_form: Login endpoint description
            session_store: Store shared by every source of the run
            credentials: Login credentials; missing credentials fail the login
        """
        self.scraper = scraper
        self.login_form = login_form
        self.session_store = session_store
        self.credentials = credentials
        self.content_rules = scraper.content_rules

    async def login(self, info: SourceInfo, client: HttpClient) -> Session:
        """Return the domain's session, logging in once if there is none."""
        return await self.session_store.get_or_login(
            info.domain,
            lambda: self._perform_login(info, client)
        )

    async def fetch(self, info: SourceInfo, client: HttpClient) -> FetchBatch:
        session = await self.login(info, client)
        try:
            return await self._scrape_with(info, client, session)
        except AuthError as e:
            if not e.expired:
                raise
            logger.warning(f"Session for {info.domain} rejected by {info.name}, logging in again")

        self.session_store.invalidate(info.domain, session)
        session = await self.login(info, client)
        return await self._scrape_with(info, client, session)

    async def parse_article(self,
                            info: SourceInfo,
                            client: HttpClient,
                            url: str,
                            cookies: Optional[Mapping[str, str]] = None) -> ExtractedContent:
        session = await self.login(info, client)
        return await self.scraper.parse_article(info, client, url, cookies=session.cookies)

    async def _scrape_with(self, info: SourceInfo, client: HttpClient, session: Session) -> FetchBatch:
        return await self.scraper.scrape(
            info,
            client,
            cookies=session.cookies,
            check_response=self._response_check(info)
        )

    async def _perform_login(self, info: SourceInfo, client: HttpClient) -> Session:
        if self.credentials is None:
            raise AuthError(info.name, info.domain, "no credentials configured")

        form = self.login_form
        data: Dict[str, str] = dict(form.extra_fields)
        data[form.username_field] = self.credentials.username
        data[form.password_field] = self.credentials.password

        response = await client.post_form(form.login_url, data, info.name)

        if response.status >= 400:
            raise AuthError(info.name, info.domain, f"login rejected with HTTP {response.status}")
        if form.failure_selector and parse_html(response.text).select_one(form.failure_selector):
            raise AuthError(info.name, info.domain, "login rejected by site")
        if not response.cookies:
            raise AuthError(info.name, info.domain, "login returned no session cookies")
        if form.session_cookie and form.session_cookie not in response.cookies:
            raise AuthError(info.name, info.domain, f"login did not set cookie '{form.session_cookie}'")

        logger.info(f"Logged in to {info.domain} as {self.credentials.username}")
        return Session(domain=info.domain, cookies=dict(response.cookies))

    def _response_check(self, info: SourceInfo) -> ResponseCheck:
        """Build the response validator that tells expired sessions from other failures."""
        form = self.login_form

        def check(response: HttpResponse, source_name: str) -> HttpResponse:
            if response.status in AUTH_STATUSES:
                raise AuthError(source_name, info.domain, f"HTTP {response.status}", expired=True)
            if self._is_login_redirect(response):
                raise AuthError(source_name, info.domain, "redirected to login page", expired=True)

            ensure_success(response, source_name)

            if form.login_marker_selector and parse_html(response.text).select_one(form.login_marker_selector):
                raise AuthError(source_name, info.domain, "page requires login", expired=True)
            return response

        return check

    def _is_login_redirect(self, response: HttpResponse) -> bool:
        if not response.requested_url or response.url == response.requested_url:
            return False
        landed = urllib.parse.urlsplit(response.url)
        login = urllib.parse.urlsplit(self.login_form.login_url)
        return landed.netloc.lower() == login.netloc.lower() and landed.path.rstrip('/') == login.path.rstrip('/')

#!/usr/bin/env python3
"""
News sources: one adapter contract over feed, scrape and authenticated
scrape strategies.
"""

from .base import ContentRules, FetchStrategy, SourceAdapter
from .http import HttpClient, HttpResponse
from .feed import FeedStrategy
from .scrape import ScrapeRules, ScrapeStrategy
from .authenticated import AuthenticatedScrapeStrategy, Credentials, LoginForm
from .registry import SourceRegistry, build_default_registry

__all__ = [
    'ContentRules', 'FetchStrategy', 'SourceAdapter', 'HttpClient', 'HttpResponse',
    'FeedStrategy', 'ScrapeRules', 'ScrapeStrategy', 'AuthenticatedScrapeStrategy',
    'Credentials', 'LoginForm', 'SourceRegistry', 'build_default_registry'
]

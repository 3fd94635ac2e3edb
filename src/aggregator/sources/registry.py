#!/usr/bin/env python3
"""
Source registry.

Holds the configured adapters for a run. The registry is an ordinary value
passed to the driver; build_default_registry() populates one from the catalog.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional

from ..config import AggregatorConfig, get_config
from ..models.source import FetchStrategyKind
from ..session_store import SessionStore
from .authenticated import Credentials
from .base import SourceAdapter
from .catalog import (
    AUTHENTICATED_SITES, FEED_SITES, MEDIUM_TAGS, SCRAPE_SITES, ZENN_TOPICS,
    authenticated_source, feed_source, medium_tag_source, scrape_source, zenn_topic_source
)

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Ordered collection of source adapters, unique by name."""

    def __init__(self, adapters: Iterable[SourceAdapter] = ()):
        """Initialize registry, registering any adapters given."""
        self._adapters: Dict[str, SourceAdapter] = {}
        self._lock = threading.Lock()
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: SourceAdapter) -> None:
        """
        Register a source adapter.

        Raises:
            ValueError: If a source with the same name is already registered
        """
        name = adapter.name()
        with self._lock:
            if name in self._adapters:
                raise ValueError(f"Source '{name}' is already registered")
            self._adapters[name] = adapter
        logger.debug(f"Registered news source: {name}")

    def get(self, name: str) -> SourceAdapter:
        """
        Get a registered adapter.

        Raises:
            KeyError: If source not found
        """
        if name not in self._adapters:
            available = list(self._adapters.keys())
            raise KeyError(f"Source '{name}' not found. Available: {available}")
        return self._adapters[name]

    def names(self) -> List[str]:
        return list(self._adapters.keys())

    def select(self, names: Iterable[str]) -> 'SourceRegistry':
        """
        Sub-registry with only the named sources. Matching is case-insensitive.

        Raises:
            KeyError: If any name is unknown
        """
        by_lower = {name.lower(): name for name in self._adapters}
        selected = []
        for name in names:
            actual = by_lower.get(name.lower())
            if actual is None:
                raise KeyError(f"Source '{name}' not found. Available: {self.names()}")
            selected.append(self._adapters[actual])
        return SourceRegistry(selected)

    def by_strategy(self, kind: FetchStrategyKind) -> List[SourceAdapter]:
        return [adapter for adapter in self._adapters.values() if adapter.strategy_kind() == kind]

    def __iter__(self) -> Iterator[SourceAdapter]:
        return iter(list(self._adapters.values()))

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters


def build_default_registry(config: Optional[AggregatorConfig] = None, session_store: Optional[SessionStore] = None) -> SourceRegistry:
    """
    Build the registry of every built-in source.

    Args:
        config: AggregatorConfig; the global configuration when omitted
        session_store: Store for authenticated sources; a fresh one when omitted

    Returns:
        Fully populated SourceRegistry
    """
    config = config or get_config()

    session_store = session_store or SessionStore()
    timeout = config.http.timeout
    run = config.run

    registry = SourceRegistry()

    for site in FEED_SITES:
        registry.register(feed_source(
            timeout=timeout,
            fetch_content=run.fetch_content,
            max_entries=run.max_articles_per_source,
            request_delay=run.request_delay,
            **site
        ))

    for topic in ZENN_TOPICS:
        registry.register(zenn_topic_source(
            topic,
            timeout=timeout,
            fetch_content=run.fetch_content,
            max_entries=run.max_articles_per_source,
            request_delay=run.request_delay
        ))

    for site in SCRAPE_SITES:
        site = dict(site)
        rules = replace(site.pop('rules'),
                        max_articles=run.max_articles_per_source,
                        request_delay=run.request_delay)
        registry.register(scrape_source(rules=rules, timeout=timeout, **site))

    for tag in MEDIUM_TAGS:
        registry.register(medium_tag_source(
            tag,
            timeout=timeout,
            max_articles=run.max_articles_per_source,
            request_delay=run.request_delay
        ))

    for site in AUTHENTICATED_SITES:
        site = dict(site)
        prefix = site.pop('credentials_prefix')
        credentials = Credentials.from_env(prefix)
        if credentials is None:
            logger.info(f"Skipping {site['name']}: {prefix}_USERNAME/{prefix}_PASSWORD not set")
            continue
        rules = replace(site.pop('rules'),
                        max_articles=run.max_articles_per_source,
                        request_delay=run.request_delay)
        registry.register(authenticated_source(
            rules=rules,
            session_store=session_store,
            credentials=credentials,
            timeout=timeout,
            **site
        ))

    logger.info(f"Registered {len(registry)} sources")
    return registry

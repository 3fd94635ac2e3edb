"""
Multi-source article aggregator.

Fetches articles from feeds and scraped sites, collapses near-duplicates
across sources and tags the result.
"""

from .driver import AggregationDriver, aggregate
from .session_store import SessionStore
from .sources import SourceAdapter, SourceRegistry, build_default_registry

__version__ = "0.1.0"

__all__ = [
    'AggregationDriver', 'aggregate', 'SessionStore', 'SourceAdapter',
    'SourceRegistry', 'build_default_registry'
]

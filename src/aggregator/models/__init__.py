#!/usr/bin/env python3
"""
Core data models for article aggregation.

Contains all data structures used throughout the application.
"""

from .identifiers import StableId, generate_stable_id
from .article import Article
from .source import SourceInfo, FetchStrategyKind
from .session import Session
from .results import (
    AggregationReport,
    AggregationResult,
    DuplicateCluster,
    FetchBatch,
    ItemError,
    SourceFailure
)

__all__ = [
    'StableId', 'generate_stable_id', 'Article', 'SourceInfo', 'FetchStrategyKind',
    'Session', 'AggregationReport', 'AggregationResult', 'DuplicateCluster',
    'FetchBatch', 'ItemError', 'SourceFailure'
]

#!/usr/bin/env python3
"""
Cross-source deduplication of near-identical articles.
"""

from .similarity import normalize_title, title_similarity
from .deduplicator import DeduplicationResult, TimeWindowDeduplicator

__all__ = [
    'normalize_title',
    'title_similarity',
    'DeduplicationResult',
    'TimeWindowDeduplicator'
]

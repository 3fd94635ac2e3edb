#!/usr/bin/env python3
"""
Time-window title deduplicator.

Collapses near-identical titles published by different sources at about the
same time into one cluster, keeping the earliest article as representative.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Deque, Dict, Iterable, List

from ..models.article import Article
from ..models.results import DuplicateCluster
from .similarity import normalize_title, title_similarity

logger = logging.getLogger(__name__)


@dataclass
class DeduplicationResult:
    """Results from deduplication process with detailed metrics."""
    articles: List[Article] = field(default_factory=list)
    clusters: List[DuplicateCluster] = field(default_factory=list)
    original_count: int = 0
    comparisons: int = 0
    processing_time: float = 0.0

    @property
    def unique_count(self) -> int:
        return len(self.articles)

    @property
    def duplicates_found(self) -> int:
        return self.original_count - self.unique_count

    @property
    def duplicate_rate(self) -> float:
        """Calculate duplicate rate as percentage."""
        if self.original_count == 0:
            return 0.0
        return (self.duplicates_found / self.original_count) * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            'original_count': self.original_count,
            'unique_count': self.unique_count,
            'duplicates_found': self.duplicates_found,
            'duplicate_rate': self.duplicate_rate,
            'clusters_merged': sum(1 for cluster in self.clusters if cluster.duplicate_ids),
            'comparisons': self.comparisons,
            'processing_time': self.processing_time
        }


class _OpenCluster:
    """A cluster while the pass is still running."""

    __slots__ = ('representative', 'key', 'duplicates')

    def __init__(self, representative: Article, key: str):
        self.representative = representative
        self.key = key
        self.duplicates: List[Article] = []

    def freeze(self) -> DuplicateCluster:
        return DuplicateCluster(
            representative=self.representative,
            duplicate_ids=frozenset(article.id for article in self.duplicates)
        )


class TimeWindowDeduplicator:
    """
    Greedy near-duplicate clustering over a sliding time window.

    Articles are visited in (timestamp, source name, id) order. Each one is
    compared with the representatives of clusters founded within `window`
    before it and joins the most similar one whose similarity exceeds the
    threshold; otherwise it founds a cluster of its own. Representatives are
    therefore the earliest member of their cluster, and running the pass
    again on its own output changes nothing.
    """

    def __init__(self,
                 similarity_threshold: float = 0.85,
                 window: timedelta = timedelta(hours=3),
                 cross_source_only: bool = True):
        """
        Initialize deduplicator.

        Args:
            similarity_threshold: Titles merge when similarity is strictly above this (0-1)
            window: Maximum time between two articles of one cluster
            cross_source_only: Never merge two articles from the same source
        """
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be between 0 and 1")
        if window < timedelta(0):
            raise ValueError("window must not be negative")

        self.similarity_threshold = similarity_threshold
        self.window = window
        self.cross_source_only = cross_source_only

    @classmethod
    def from_config(cls, dedup_config) -> 'TimeWindowDeduplicator':
        return cls(
            similarity_threshold=dedup_config.similarity_threshold,
            window=timedelta(minutes=dedup_config.window_minutes),
            cross_source_only=dedup_config.cross_source_only
        )

    def deduplicate(self, articles: Iterable[Article]) -> DeduplicationResult:
        """
        Collapse near-duplicate articles.

        Args:
            articles: Articles from any number of sources

        Returns:
            DeduplicationResult with representatives in chronological order
        """
        start_time = time.monotonic()
        ordered = sorted(articles, key=lambda a: (a.timestamp, a.source_name, str(a.id)))
        result = DeduplicationResult(original_count=len(ordered))

        if not ordered:
            return result

        clusters: List[_OpenCluster] = []
        active: Deque[_OpenCluster] = deque()

        for article in ordered:
            key = normalize_title(article.title)

            if not key:
                # Nothing to compare; kept as its own cluster
                clusters.append(_OpenCluster(article, key))
                continue

            while active and article.timestamp - active[0].representative.timestamp > self.window:
                active.popleft()

            best_cluster = None
            best_score = self.similarity_threshold
            for cluster in active:
                if self.cross_source_only and cluster.representative.source_name == article.source_name:
                    continue
                result.comparisons += 1
                score = title_similarity(key, cluster.key)
                if score > best_score:
                    best_cluster, best_score = cluster, score

            if best_cluster is not None:
                best_cluster.duplicates.append(article)
                logger.debug(f"Duplicate found ({best_score:.2f}): {article.title[:50]}... "
                             f"[{article.source_name}] -> [{best_cluster.representative.source_name}]")
            else:
                cluster = _OpenCluster(article, key)
                clusters.append(cluster)
                active.append(cluster)

        result.clusters = [cluster.freeze() for cluster in clusters]
        result.articles = [cluster.representative for cluster in clusters]
        result.processing_time = time.monotonic() - start_time

        logger.info(f"Deduplication completed: {result.original_count} → {result.unique_count} "
                    f"({result.duplicate_rate:.1f}% duplicates) in {result.processing_time:.2f}s")

        return result

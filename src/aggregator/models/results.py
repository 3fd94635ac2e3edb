#!/usr/bin/env python3
"""
Result models produced by sources, the driver and the deduplicator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..exceptions import AggregatorError, ErrorKind, error_kind_of
from .article import Article
from .identifiers import StableId


@dataclass(frozen=True)
class ItemError:
    """A single feed entry or page that was skipped while the fetch went on."""
    source_name: str
    error_kind: ErrorKind
    message: str
    item_ref: Optional[str] = None

    @classmethod
    def from_exception(cls, source_name: str, error: BaseException, item_ref: Optional[str] = None) -> 'ItemError':
        return cls(
            source_name=source_name,
            error_kind=error_kind_of(error),
            message=str(error),
            item_ref=item_ref
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source_name,
            'error_kind': self.error_kind.value,
            'message': self.message,
            'item': self.item_ref
        }


@dataclass(frozen=True)
class FetchBatch:
    """What one adapter call returns: the parsed articles and the skipped items."""
    articles: Tuple[Article, ...] = ()
    item_errors: Tuple[ItemError, ...] = ()

    def __len__(self) -> int:
        return len(self.articles)


@dataclass(frozen=True)
class SourceFailure:
    """Failure record for one source in one run."""
    source_name: str
    error_kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, source_name: str, error: BaseException) -> 'SourceFailure':
        message = error.message if isinstance(error, AggregatorError) else f"{type(error).__name__}: {error}"
        return cls(source_name=source_name, error_kind=error_kind_of(error), message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source_name,
            'error_kind': self.error_kind.value,
            'message': self.message
        }


@dataclass(frozen=True)
class AggregationResult:
    """Outcome of one source in one driver run: articles or a failure."""
    source_name: str
    articles: Tuple[Article, ...] = ()
    failure: Optional[SourceFailure] = None
    item_errors: Tuple[ItemError, ...] = ()
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, source_name: str, batch: FetchBatch, duration_seconds: float = 0.0) -> 'AggregationResult':
        return cls(
            source_name=source_name,
            articles=tuple(batch.articles),
            item_errors=tuple(batch.item_errors),
            duration_seconds=duration_seconds
        )

    @classmethod
    def failed(cls, source_name: str, error: BaseException, duration_seconds: float = 0.0) -> 'AggregationResult':
        return cls(
            source_name=source_name,
            failure=SourceFailure.from_exception(source_name, error),
            duration_seconds=duration_seconds
        )


@dataclass(frozen=True)
class DuplicateCluster:
    """A representative article and the ids of the duplicates it absorbed."""
    representative: Article
    duplicate_ids: FrozenSet[StableId] = frozenset()

    @property
    def size(self) -> int:
        return 1 + len(self.duplicate_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'representative': str(self.representative.id),
            'title': self.representative.title,
            'source': self.representative.source_name,
            'duplicates': sorted(str(duplicate_id) for duplicate_id in self.duplicate_ids)
        }


@dataclass
class AggregationReport:
    """Everything a driver run produced."""
    articles: List[Article] = field(default_factory=list)
    failures: List[SourceFailure] = field(default_factory=list)
    results: List[AggregationResult] = field(default_factory=list)
    clusters: List[DuplicateCluster] = field(default_factory=list)
    dedup_stats: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def item_errors(self) -> List[ItemError]:
        return [error for result in self.results for error in result.item_errors]

    @property
    def succeeded_sources(self) -> List[str]:
        return [result.source_name for result in self.results if result.succeeded]

    def as_tuple(self) -> Tuple[List[Article], List[SourceFailure]]:
        """The (deduplicated articles, per-source failures) pair."""
        return self.articles, self.failures

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for JSON output."""
        return {
            'articles': [article.to_dict() for article in self.articles],
            'failures': [failure.to_dict() for failure in self.failures],
            'item_errors': [error.to_dict() for error in self.item_errors],
            'clusters': [cluster.to_dict() for cluster in self.clusters if cluster.duplicate_ids],
            'sources': {
                'total': len(self.results),
                'succeeded': len(self.succeeded_sources),
                'failed': len(self.failures)
            },
            'deduplication': self.dedup_stats,
            'duration_seconds': self.duration_seconds
        }

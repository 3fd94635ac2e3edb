#!/usr/bin/env python3
"""
Formatting utilities for articles and run reports.
"""

from typing import Any, Dict, List

from .models.article import Article
from .models.results import AggregationReport

PROPERTY_LABELS = {
    'is_ai_related': 'AI',
    'is_security_related': 'SEC',
    'is_it_related': 'IT',
}


def format_article(article: Article) -> str:
    """Format a single article for display."""
    timestamp = ""
    if article.published:
        timestamp = article.published.strftime("%Y-%m-%d %H:%M")

    tags = [label for name, label in PROPERTY_LABELS.items() if article.properties.get(name)]
    tag_str = f" ({', '.join(tags)})" if tags else ""

    return f"[{timestamp}] [{article.source_name.upper()}] {article.title}{tag_str}\n    {article.url}\n"


def articles_to_dict(articles: List[Article]) -> List[Dict[str, Any]]:
    """Convert Article objects to dictionaries for JSON output."""
    return [article.to_dict() for article in articles]


def format_report(report: AggregationReport, show_articles: bool = True) -> str:
    """Format a run report: articles, then per-source failures and a summary."""
    lines = []

    if show_articles:
        for article in report.articles:
            lines.append(format_article(article))

    if report.failures:
        lines.append(f"=== Failed sources ({len(report.failures)}) ===")
        for failure in report.failures:
            lines.append(f"  ✗ {failure.source_name} [{failure.error_kind.value}]: {failure.message}")
        lines.append("")

    item_errors = report.item_errors
    if item_errors:
        lines.append(f"=== Skipped items ({len(item_errors)}) ===")
        for error in item_errors[:20]:
            lines.append(f"  - {error.source_name}: {error.message}")
        if len(item_errors) > 20:
            lines.append(f"  ... and {len(item_errors) - 20} more")
        lines.append("")

    merged = [cluster for cluster in report.clusters if cluster.duplicate_ids]
    lines.append("=" * 50)
    lines.append(f"Sources: {len(report.succeeded_sources)}/{len(report.results)} succeeded")
    lines.append(f"Articles: {len(report.articles)} ({len(merged)} duplicate groups merged)")
    lines.append(f"Duration: {report.duration_seconds:.2f}s")

    return "\n".join(lines)

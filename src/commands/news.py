#!/usr/bin/env python3
"""
News command endpoints for fetching, deduplicating and tagging articles.
"""

import json
import logging
from argparse import Namespace
from dataclasses import replace

from .base import BaseCommand
from aggregator.config import AggregatorConfig, validate_config
from aggregator.deduplication import TimeWindowDeduplicator
from aggregator.driver import AggregationDriver
from aggregator.formatters import format_report

logger = logging.getLogger(__name__)


class NewsCommand(BaseCommand):
    """Handle article fetching across all configured sources."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute news subcommand."""
        try:
            if subcommand == "fetch":
                return self.fetch(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except (Exception, KeyboardInterrupt) as e:
            return self.handle_error(e, f"news {subcommand}")

    def fetch(self, args: Namespace) -> int:
        """Fetch articles from every selected source and print the report."""
        config = self._config_with_overrides(args)
        self.logger.debug(f"Effective configuration: {config.to_dict()}")
        registry = self.build_registry(getattr(args, 'sources', None), config)

        if not len(registry):
            print("No sources to fetch.")
            return 0

        driver = AggregationDriver(
            config,
            deduplicator=TimeWindowDeduplicator.from_config(config.dedup),
            dedupe=not getattr(args, 'no_dedupe', False)
        )
        report = driver.run_sync(registry)

        if getattr(args, 'json', False):
            print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
        else:
            print(format_report(report, show_articles=not getattr(args, 'summary_only', False)))

        if not report.succeeded_sources:
            self.logger.error("Every source failed")
            return 1
        return 0

    def _config_with_overrides(self, args: Namespace) -> AggregatorConfig:
        """Apply command line overrides on top of the loaded configuration."""
        config = self.config

        dedup_changes = {}
        if getattr(args, 'similarity', None) is not None:
            dedup_changes['similarity_threshold'] = args.similarity
        if getattr(args, 'window_minutes', None) is not None:
            dedup_changes['window_minutes'] = args.window_minutes
        if dedup_changes:
            config = replace(config, dedup=replace(config.dedup, **dedup_changes))

        if getattr(args, 'fetch_content', False):
            config = replace(config, run=replace(config.run, fetch_content=True))

        if config is not self.config:
            validate_config(config)
        return config

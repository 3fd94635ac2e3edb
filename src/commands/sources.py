#!/usr/bin/env python3
"""
Source command endpoints: list registered sources and probe their URLs.
"""

from argparse import Namespace
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List

from .base import BaseCommand
from aggregator.models.source import FetchStrategyKind


class SourcesCommand(BaseCommand):
    """Inspect the configured news sources."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute sources subcommand."""
        try:
            if subcommand == "list":
                return self.list(args)
            elif subcommand == "check":
                return self.check(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except (Exception, KeyboardInterrupt) as e:
            return self.handle_error(e, f"sources {subcommand}")

    def list(self, args: Namespace) -> int:
        """Print every registered source."""
        registry = self.build_registry()

        adapters = list(registry)
        strategy = getattr(args, 'strategy', None)
        if strategy:
            adapters = registry.by_strategy(FetchStrategyKind(strategy))

        print(f"📰 Registered sources ({len(adapters)}):")
        for adapter in adapters:
            info = adapter.info
            categories = f" [{', '.join(info.categories)}]" if info.categories else ""
            print(f"  {info.name:<32} {info.strategy.value:<22} {info.language:<3} {info.url}{categories}")
        return 0

    def check(self, args: Namespace) -> int:
        """Probe each source URL and report which respond."""
        registry = self.build_registry(getattr(args, 'sources', None))
        adapters = list(registry)

        with ThreadPoolExecutor(max_workers=self.config.run.max_concurrent_sources) as executor:
            statuses: List[Dict[str, Any]] = list(executor.map(lambda adapter: adapter.health_check(), adapters))

        unavailable = 0
        for status in statuses:
            if status['available']:
                print(f"  ✅ {status['source']}: HTTP {status['status_code']} "
                      f"in {status['response_time_ms']:.0f}ms")
            else:
                unavailable += 1
                detail = status.get('error') or f"HTTP {status.get('status_code')}"
                print(f"  ❌ {status['source']}: {detail}")

        print(f"\n{len(statuses) - unavailable}/{len(statuses)} sources available")
        return 0 if unavailable == 0 else 1

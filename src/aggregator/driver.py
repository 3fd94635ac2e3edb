#!/usr/bin/env python3
"""
Aggregation driver.

Runs every source of a registry concurrently, turns each outcome into exactly
one AggregationResult, then deduplicates and tags the union of the articles.
One failing source never affects the others, and a run always completes.
"""

import asyncio
import concurrent.futures
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from .config import AggregatorConfig, get_config
from .deduplication import TimeWindowDeduplicator
from .exceptions import SourceTimeoutError
from .models.article import Article
from .models.results import AggregationReport, AggregationResult
from .sources.base import SourceAdapter
from .sources.http import HttpClient
from .sources.registry import SourceRegistry, build_default_registry
from .tagging import PropertyTagger, apply_taggers, default_taggers

logger = logging.getLogger(__name__)


class AggregationDriver:
    """Fetches all registered sources and builds the run report."""

    def __init__(self,
                 config: Optional[AggregatorConfig] = None,
                 deduplicator: Optional[TimeWindowDeduplicator] = None,
                 taggers: Optional[Sequence[PropertyTagger]] = None,
                 client_factory: Optional[Callable[[], HttpClient]] = None,
                 dedupe: bool = True):
        """
        Initialize driver.

        Args:
            config: Configuration; the global configuration when omitted
            deduplicator: Deduplicator; built from config.dedup when omitted
            taggers: Property taggers; the keyword taggers when omitted
            client_factory: Builds the HTTP client shared by the run
            dedupe: Pass the article union through unchanged when False
        """
        self.config = config or get_config()
        self.deduplicator = deduplicator or TimeWindowDeduplicator.from_config(self.config.dedup)
        self.taggers = default_taggers() if taggers is None else list(taggers)
        self.client_factory = client_factory or self._default_client
        self.dedupe = dedupe

    def _default_client(self) -> HttpClient:
        http = self.config.http
        return HttpClient(
            timeout=http.timeout,
            max_connections=http.max_connections,
            user_agent=http.user_agent
        )

    async def run(self, registry: SourceRegistry) -> AggregationReport:
        """
        Fetch every source of the registry.

        Returns:
            Report with one result per registered source
        """
        start_time = time.monotonic()
        adapters = list(registry)
        run_config = self.config.run

        logger.info(f"Fetching {len(adapters)} sources "
                    f"(max {run_config.max_concurrent_sources} concurrent)")

        semaphore = asyncio.Semaphore(run_config.max_concurrent_sources)
        results: Dict[str, AggregationResult] = {}

        async with self.client_factory() as client:
            tasks = {
                asyncio.ensure_future(self._run_source(adapter, client, semaphore)): adapter
                for adapter in adapters
            }

            if tasks:
                done, pending = await asyncio.wait(tasks.keys(), timeout=run_config.run_deadline)

                if pending:
                    logger.warning(f"Run deadline of {run_config.run_deadline}s reached, "
                                   f"cancelling {len(pending)} sources")
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)

                elapsed = time.monotonic() - start_time
                for task, adapter in tasks.items():
                    if task in done:
                        results[adapter.name()] = task.result()
                    else:
                        error = SourceTimeoutError(adapter.name(), run_config.run_deadline)
                        results[adapter.name()] = AggregationResult.failed(adapter.name(), error, elapsed)

        ordered_results = [results[adapter.name()] for adapter in adapters]
        report = self._build_report(ordered_results)
        report.duration_seconds = time.monotonic() - start_time

        logger.info(f"Fetched {len(report.succeeded_sources)}/{len(adapters)} sources in "
                    f"{report.duration_seconds:.2f}s: {len(report.articles)} articles, "
                    f"{len(report.failures)} failures, {len(report.item_errors)} skipped items")
        return report

    async def _run_source(self,
                          adapter: SourceAdapter,
                          client: HttpClient,
                          semaphore: asyncio.Semaphore) -> AggregationResult:
        name = adapter.name()
        timeout = self.config.run.source_timeout

        async with semaphore:
            start_time = time.monotonic()
            try:
                batch = await asyncio.wait_for(adapter.fetch_articles(client), timeout=timeout)
            except asyncio.TimeoutError:
                duration = time.monotonic() - start_time
                logger.warning(f"{name}: timed out after {timeout}s")
                return AggregationResult.failed(name, SourceTimeoutError(name, timeout), duration)
            except Exception as e:
                # Any error, expected or not, only fails this source
                duration = time.monotonic() - start_time
                result = AggregationResult.failed(name, e, duration)
                logger.warning(f"{name}: failed [{result.failure.error_kind.value}] {result.failure.message}")
                return result

            duration = time.monotonic() - start_time
            logger.info(f"{name}: {len(batch.articles)} articles, "
                        f"{len(batch.item_errors)} skipped in {duration:.2f}s")
            return AggregationResult.success(name, batch, duration)

    def _build_report(self, results: List[AggregationResult]) -> AggregationReport:
        articles: List[Article] = [article for result in results for article in result.articles]
        failures = [result.failure for result in results if result.failure is not None]

        report = AggregationReport(results=results, failures=failures)

        # Post-processing never fails the run: on error the articles pass through as they are
        if self.dedupe:
            try:
                dedup_result = self.deduplicator.deduplicate(articles)
            except Exception as e:
                logger.error(f"Deduplication failed, keeping all {len(articles)} articles: {e}", exc_info=True)
                report.dedup_stats = {'error': f"{type(e).__name__}: {e}"}
            else:
                articles = dedup_result.articles
                report.clusters = dedup_result.clusters
                report.dedup_stats = dedup_result.to_dict()

        for tagger in self.taggers:
            try:
                articles = apply_taggers(articles, [tagger])
            except Exception as e:
                logger.error(f"Tagger {type(tagger).__name__} failed, its properties are skipped: {e}",
                             exc_info=True)

        report.articles = list(articles)
        return report

    def run_sync(self, registry: SourceRegistry) -> AggregationReport:
        """Run from synchronous code."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.run(registry))

        # Already inside an event loop: run on a fresh loop in a worker thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(asyncio.run, self.run(registry)).result()


def aggregate(registry: Optional[SourceRegistry] = None,
              config: Optional[AggregatorConfig] = None,
              **driver_options) -> AggregationReport:
    """
    Convenience function to run a full aggregation from synchronous code.

    Args:
        registry: Sources to fetch; the default registry when omitted
        config: Configuration; the global configuration when omitted
        **driver_options: Passed to AggregationDriver

    Returns:
        AggregationReport
    """
    config = config or get_config()
    if registry is None:
        registry = build_default_registry(config)
    return AggregationDriver(config, **driver_options).run_sync(registry)

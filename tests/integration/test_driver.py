import asyncio
import logging
from dataclasses import replace
from datetime import datetime

from conftest import FakeHttpClient, StubStrategy, article_at
from aggregator.deduplication import TimeWindowDeduplicator
from aggregator.driver import AggregationDriver
from aggregator.exceptions import ErrorKind, NetworkError, ParseError
from aggregator.models.article import Article
from aggregator.models.identifiers import generate_stable_id
from aggregator.models.results import FetchBatch
from aggregator.sources.registry import SourceRegistry
from aggregator.tagging import KeywordTagger, PropertyTagger


def _driver(config, **kwargs):
    return AggregationDriver(config, client_factory=FakeHttpClient, **kwargs)


def test_every_source_yields_exactly_one_outcome(fast_config, stub_source_factory):
    """Test N sources with K failures return N results and K failures."""
    registry = SourceRegistry([
        stub_source_factory("Alpha", [article_at("Alpha", "Alpha story")]),
        stub_source_factory("Beta", NetworkError("Beta", "https://beta.example.com/feed", "HTTP 500", status=500)),
        stub_source_factory("Gamma", [article_at("Gamma", "Gamma story", minutes=400)]),
        stub_source_factory("Delta", RuntimeError("adapter bug")),
        stub_source_factory("Epsilon", ParseError("Epsilon", "feed", "not a feed")),
    ])

    report = _driver(fast_config).run_sync(registry)

    assert [result.source_name for result in report.results] == ["Alpha", "Beta", "Gamma", "Delta", "Epsilon"]
    assert len(report.failures) == 3
    assert {failure.source_name: failure.error_kind for failure in report.failures} == {
        "Beta": ErrorKind.NETWORK,
        "Delta": ErrorKind.UNEXPECTED,
        "Epsilon": ErrorKind.PARSE,
    }
    assert sorted(article.source_name for article in report.articles) == ["Alpha", "Gamma"]
    assert report.succeeded_sources == ["Alpha", "Gamma"]


def test_slow_source_times_out_alone(fast_config, stub_source_factory):
    config = replace(fast_config, run=replace(fast_config.run, source_timeout=0.05))
    registry = SourceRegistry([
        stub_source_factory("Fast", [article_at("Fast", "Quick story")]),
        stub_source_factory("Slow", [article_at("Slow", "Slow story")], delay=5),
    ])

    report = _driver(config).run_sync(registry)

    assert len(report.results) == 2
    assert [failure.source_name for failure in report.failures] == ["Slow"]
    assert report.failures[0].error_kind == ErrorKind.TIMEOUT
    assert [article.title for article in report.articles] == ["Quick story"]


def test_run_deadline_cancels_remaining_sources(fast_config, stub_source_factory):
    config = replace(fast_config, run=replace(fast_config.run, source_timeout=10.0, run_deadline=0.1))
    registry = SourceRegistry([
        stub_source_factory("Fast", [article_at("Fast", "Quick story")]),
        stub_source_factory("Stuck", [], delay=5),
        stub_source_factory("Stuck Too", [], delay=5),
    ])

    report = _driver(config).run_sync(registry)

    assert len(report.results) == 3
    assert sorted(failure.source_name for failure in report.failures) == ["Stuck", "Stuck Too"]
    assert all(failure.error_kind == ErrorKind.TIMEOUT for failure in report.failures)
    assert report.duration_seconds < 5


def test_concurrency_limit_is_respected(fast_config, stub_source_factory):
    config = replace(fast_config, run=replace(fast_config.run, max_concurrent_sources=2))
    running = []
    peak = []

    registry = SourceRegistry([stub_source_factory(f"Source {index}", []) for index in range(6)])
    for adapter in registry:
        original = adapter.strategy.fetch

        async def tracked(info, client, original=original):
            running.append(info.name)
            peak.append(len(running))
            await asyncio.sleep(0.01)
            running.remove(info.name)
            return await original(info, client)

        adapter.strategy.fetch = tracked

    report = _driver(config).run_sync(registry)

    assert len(report.results) == 6
    assert max(peak) <= 2


def test_cross_source_duplicates_are_collapsed_and_tagged(fast_config, stub_source_factory):
    registry = SourceRegistry([
        stub_source_factory("Outlet A", [article_at("Outlet A", "OpenAI releases GPT-5", minutes=0)]),
        stub_source_factory("Outlet B", [article_at("Outlet B", "OpenAI Releases GPT-5 ", minutes=2)]),
    ])

    report = _driver(fast_config).run_sync(registry)

    assert len(report.articles) == 1
    assert report.articles[0].source_name == "Outlet A"
    assert report.articles[0].properties["is_ai_related"] is True
    assert report.dedup_stats["duplicates_found"] == 1


def test_dedupe_can_be_disabled(fast_config, stub_source_factory):
    registry = SourceRegistry([
        stub_source_factory("Outlet A", [article_at("Outlet A", "Same headline")]),
        stub_source_factory("Outlet B", [article_at("Outlet B", "Same headline", minutes=1)]),
    ])

    report = _driver(fast_config, dedupe=False).run_sync(registry)

    assert len(report.articles) == 2
    assert report.clusters == []


def test_empty_registry_completes(fast_config):
    report = _driver(fast_config).run_sync(SourceRegistry())

    assert report.results == []
    assert report.articles == []
    assert report.as_tuple() == ([], [])


def test_failures_are_logged(fast_config, stub_source_factory, caplog):
    caplog.set_level(logging.INFO, logger="aggregator.driver")
    registry = SourceRegistry([
        stub_source_factory("Broken", NetworkError("Broken", "https://broken.example.com", "refused")),
    ])

    _driver(fast_config).run_sync(registry)

    assert "Broken: failed [network]" in caplog.text
    assert "Fetched 0/1 sources" in caplog.text


def test_run_sync_works_inside_a_running_loop(fast_config, stub_source_factory):
    registry = SourceRegistry([stub_source_factory("Alpha", [article_at("Alpha", "Story")])])
    driver = _driver(fast_config)

    async def call_from_loop():
        return driver.run_sync(registry)

    report = asyncio.run(call_from_loop())

    assert len(report.articles) == 1


class NaiveDateStrategy(StubStrategy):
    """Builds its article directly, with a timestamp lacking a timezone."""

    async def fetch(self, info, client):
        article = Article(
            id=generate_stable_id(Article, info.name, "https://beta.example.com/a"),
            source_name=info.name,
            source_domain="beta.example.com",
            url="https://beta.example.com/a",
            title="Naive story",
            fetched_at=datetime(2024, 5, 1, 9, 0)
        )
        return FetchBatch(articles=(article,))


def test_naive_article_fails_only_its_source(fast_config, stub_source_factory):
    beta = stub_source_factory("Beta")
    beta.strategy = NaiveDateStrategy()
    registry = SourceRegistry([stub_source_factory("Alpha", [article_at("Alpha", "Alpha story")]), beta])

    report = _driver(fast_config).run_sync(registry)

    assert [article.title for article in report.articles] == ["Alpha story"]
    assert [(failure.source_name, failure.error_kind) for failure in report.failures] == [
        ("Beta", ErrorKind.CONTRACT)
    ]


class BrokenDeduplicator(TimeWindowDeduplicator):
    def deduplicate(self, articles):
        raise TypeError("can't compare offset-naive and offset-aware datetimes")


class BrokenTagger(PropertyTagger):
    def tag(self, article):
        raise RuntimeError("tagger bug")


def test_post_processing_errors_do_not_fail_the_run(fast_config, stub_source_factory, caplog):
    registry = SourceRegistry([
        stub_source_factory("Outlet A", [article_at("Outlet A", "OpenAI releases GPT-5")]),
        stub_source_factory("Outlet B", [article_at("Outlet B", "OpenAI releases GPT-5", minutes=1)]),
    ])
    driver = _driver(fast_config, deduplicator=BrokenDeduplicator(),
                     taggers=[BrokenTagger(), KeywordTagger("is_ai_related", ["openai"])])

    report = driver.run_sync(registry)

    assert len(report.articles) == 2
    assert all(article.properties == {"is_ai_related": True} for article in report.articles)
    assert "TypeError" in report.dedup_stats["error"]
    assert report.succeeded_sources == ["Outlet A", "Outlet B"]
    assert "Deduplication failed" in caplog.text
    assert "Tagger BrokenTagger failed" in caplog.text

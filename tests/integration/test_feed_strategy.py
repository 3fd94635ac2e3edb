import asyncio
from datetime import datetime, timezone

import pytest

from conftest import article_page, make_response, rss_document
from aggregator.exceptions import ErrorKind, NetworkError, ParseError
from aggregator.sources.catalog import feed_source
from aggregator.sources.feed import FeedStrategy

FEED_URL = "https://news.example.com/feed.xml"


def _items(count: int):
    return [
        {
            "title": f"Story number {index}",
            "link": f"https://news.example.com/story/{index}",
            "pubDate": f"Wed, 01 May 2024 {8 + index % 10:02d}:00:00 GMT",
            "description": f"<p>Summary <b>{index}</b></p>",
        }
        for index in range(count)
    ]


@pytest.fixture
def source():
    return feed_source(name="Example News", url=FEED_URL, title_suffixes=(" | Example News",))


def test_one_malformed_entry_among_ten_is_skipped(source):
    """Test that a broken entry is reported and the other nine parse."""
    items = _items(9)
    items.insert(4, {"title": "Entry without a link", "description": "no link here"})

    batch = source.strategy.parse_feed(source.info, rss_document(items))

    assert len(batch.articles) == 9
    assert len(batch.item_errors) == 1
    assert batch.item_errors[0].error_kind == ErrorKind.PARSE
    assert "Entry without a link" in batch.item_errors[0].item_ref


def test_unparseable_date_skips_only_that_entry(source):
    """Test that a present but invalid date is an item error, not a fetch failure."""
    items = _items(3)
    items[1]["pubDate"] = "invalid"

    batch = source.strategy.parse_feed(source.info, rss_document(items))

    assert [article.title for article in batch.articles] == ["Story number 0", "Story number 2"]
    assert len(batch.item_errors) == 1


def test_entry_fields_are_normalized(source):
    """Test title suffix removal, summary HTML stripping and UTC dates."""
    items = [{
        "title": "Big launch today | Example News",
        "link": "https://news.example.com/story/1?utm_source=rss#top",
        "pubDate": "Wed, 01 May 2024 10:30:00 +0900",
        "description": "<p>Some <em>rich</em> text</p>",
    }]

    article = source.strategy.parse_feed(source.info, rss_document(items)).articles[0]

    assert article.title == "Big launch today"
    assert article.url == "https://news.example.com/story/1"
    assert article.summary == "Some rich text"
    assert article.published == datetime(2024, 5, 1, 1, 30, tzinfo=timezone.utc)
    assert article.source_domain == "news.example.com"


def test_entry_without_date_uses_fetch_time(source):
    """Test that undated entries keep a None publish date and sort by fetch time."""
    fetched_at = datetime(2024, 5, 2, tzinfo=timezone.utc)
    items = [{"title": "Undated", "link": "https://news.example.com/undated"}]

    article = source.strategy.parse_feed(source.info, rss_document(items), fetched_at=fetched_at).articles[0]

    assert article.published is None
    assert article.timestamp == fetched_at


def test_repeated_links_are_dropped(source):
    """Test that URLs are unique within one source's result."""
    items = _items(2)
    items.append(dict(items[0], title="Same link, new title"))

    batch = source.strategy.parse_feed(source.info, rss_document(items))

    assert len(batch.articles) == 2
    assert len({article.url for article in batch.articles}) == 2


def test_atom_feed_is_supported(source):
    """Test Atom documents with content instead of summary."""
    atom = (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom"><title>Atom</title>'
        '<entry><title>Atom entry</title>'
        '<link href="https://news.example.com/atom/1"/>'
        '<updated>2024-05-01T12:00:00Z</updated>'
        '<content type="html">&lt;p&gt;Atom body&lt;/p&gt;</content>'
        '</entry></feed>'
    )

    article = source.strategy.parse_feed(source.info, atom).articles[0]

    assert article.title == "Atom entry"
    assert article.summary == "Atom body"
    assert article.published == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_unparseable_document_is_a_fetch_failure(source):
    """Test that a document that is not a feed raises ParseError."""
    with pytest.raises(ParseError):
        source.strategy.parse_feed(source.info, "<html><body><p>Not a feed</p></body></html>")


def test_max_entries_limits_articles(source):
    strategy = FeedStrategy(max_entries=3)

    batch = strategy.parse_feed(source.info, rss_document(_items(10)))

    assert len(batch.articles) == 3


def test_fetch_articles_uses_client(source, fake_client_factory):
    client = fake_client_factory({FEED_URL: make_response(FEED_URL, rss_document(_items(2)))})

    batch = asyncio.run(source.fetch_articles(client))

    assert len(batch.articles) == 2
    assert client.count("GET", FEED_URL) == 1


def test_http_error_status_fails_the_source(source, fake_client_factory):
    client = fake_client_factory({FEED_URL: make_response(FEED_URL, "gone", status=503)})

    with pytest.raises(NetworkError) as exc_info:
        asyncio.run(source.fetch_articles(client))

    assert exc_info.value.status == 503


def test_fetch_content_attaches_bodies_and_keeps_failed_ones(fake_client_factory):
    """Test that article bodies are extracted and a failed page only adds an item error."""
    source = feed_source(
        name="Example News",
        url=FEED_URL,
        content_selectors=(".article-body",),
        fetch_content=True
    )
    items = _items(2)
    client = fake_client_factory({
        FEED_URL: make_response(FEED_URL, rss_document(items)),
        items[0]["link"]: make_response(items[0]["link"], article_page("Story number 0", "Full body text.")),
    })

    batch = asyncio.run(source.fetch_articles(client))

    assert len(batch.articles) == 2
    bodies = {article.url: article.text for article in batch.articles}
    assert bodies[items[0]["link"]] == "Full body text."
    assert bodies[items[1]["link"]] == ""
    assert len(batch.item_errors) == 1
    assert batch.item_errors[0].error_kind == ErrorKind.NETWORK

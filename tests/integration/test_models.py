from datetime import datetime, timezone

import pytest

from conftest import make_response, rss_document
from aggregator.exceptions import (
    AuthError, ConfigurationError, ContractViolation, ErrorKind, NetworkError, ParseError,
    SourceTimeoutError, error_kind_of
)
from aggregator.models.article import Article
from aggregator.models.identifiers import StableId, generate_stable_id
from aggregator.models.results import AggregationResult, ItemError, SourceFailure
from aggregator.models.session import Session
from aggregator.models.source import FetchStrategyKind, SourceInfo
from aggregator.sources.catalog import feed_source
from aggregator.urls import canonicalize_url, domain_of, is_valid_url


def test_article_id_is_stable_across_independent_fetches():
    """Test that two fetches of the same feed produce the same article ids."""
    source = feed_source(name="Example News", url="https://news.example.com/feed")
    document = rss_document([{"title": "Stable story", "link": "https://news.example.com/a?utm_medium=rss"}])

    first = source.strategy.parse_feed(source.info, document).articles[0]
    second = source.strategy.parse_feed(
        source.info, document, fetched_at=datetime(2030, 1, 1, tzinfo=timezone.utc)
    ).articles[0]

    assert first.id == second.id
    assert first.fetched_at != second.fetched_at


def test_article_id_depends_on_source_and_url():
    base = Article.create("Outlet A", "https://example.com/a", "Title")

    assert Article.create("Outlet A", "https://example.com/a#frag", "Other title").id == base.id
    assert Article.create("Outlet B", "https://example.com/a", "Title").id != base.id
    assert Article.create("Outlet A", "https://example.com/b", "Title").id != base.id


def test_stable_id_is_typed_by_kind():
    article_id = generate_stable_id(Article, "x")
    source_id = generate_stable_id(SourceInfo, "x")

    assert isinstance(article_id, StableId)
    assert article_id.kind == "Article"
    assert article_id != source_id
    with pytest.raises(ValueError):
        generate_stable_id(Article)


@pytest.mark.parametrize("title", ["", "   ", "\n\t"])
def test_article_rejects_empty_title(title):
    with pytest.raises(ContractViolation):
        Article.create("Outlet A", "https://example.com/a", title)


@pytest.mark.parametrize("url", ["", "/relative/path", "ftp://example.com/file", "not a url"])
def test_article_rejects_invalid_url(url):
    with pytest.raises(ContractViolation):
        Article.create("Outlet A", url, "Title")


def test_article_create_normalizes_inputs():
    article = Article.create(
        "Outlet A",
        "HTTPS://Example.COM/Path?utm_campaign=x&id=3#section",
        "<![CDATA[  Spaced   title ]]>",
        published=datetime(2024, 5, 1, 12, 0),
        summary="<p>Hello&nbsp;<b>world</b></p>"
    )

    assert article.url == "https://example.com/Path?id=3"
    assert article.title == "Spaced title"
    assert article.summary == "Hello world"
    assert article.published.tzinfo is not None
    assert article.source_domain == "example.com"


def test_article_with_properties_returns_new_instance():
    article = Article.create("Outlet A", "https://example.com/a", "Title")

    tagged = article.with_properties({"is_ai_related": True})

    assert tagged.properties == {"is_ai_related": True}
    assert article.properties == {}
    assert tagged.id == article.id


def test_article_dict_round_trip_keeps_identity():
    article = Article.create("Outlet A", "https://example.com/a", "Title",
                             published=datetime(2024, 5, 1, tzinfo=timezone.utc))

    restored = Article.from_dict(article.to_dict())

    assert restored.id == article.id
    assert restored.published == article.published


def test_source_info_derives_domain_and_cleans_titles():
    info = SourceInfo(
        name="Example",
        url="https://www.example.com/feed",
        strategy=FetchStrategyKind.FEED,
        title_prefixes=("[PR] ",),
        title_suffixes=(" - Example",)
    )

    assert info.domain == "www.example.com"
    assert info.clean_title("[PR] Launch day - Example") == "Launch day"


@pytest.mark.parametrize("name,url", [("", "https://example.com"), ("Example", "example.com/feed")])
def test_source_info_validates(name, url):
    with pytest.raises(ConfigurationError):
        SourceInfo(name=name, url=url, strategy=FetchStrategyKind.FEED)


def test_session_repr_hides_cookie_values():
    session = Session(domain="example.com", cookies={"sid": "very-secret"})

    assert "very-secret" not in repr(session)


@pytest.mark.parametrize("error,kind", [
    (NetworkError("S", "https://x", "refused"), ErrorKind.NETWORK),
    (SourceTimeoutError("S", 5), ErrorKind.TIMEOUT),
    (ParseError("S", "feed", "bad"), ErrorKind.PARSE),
    (AuthError("S", "x.com", "denied"), ErrorKind.AUTH),
    (ContractViolation("title", "", "non-empty text"), ErrorKind.CONTRACT),
    (ConfigurationError("key", "bad"), ErrorKind.CONFIGURATION),
    (TimeoutError(), ErrorKind.TIMEOUT),
    (KeyError("boom"), ErrorKind.UNEXPECTED),
])
def test_error_kinds(error, kind):
    assert error_kind_of(error) == kind


def test_error_to_dict_carries_context():
    error = AuthError("Members", "members.example.com", "expired session", expired=True)

    data = error.to_dict()

    assert data["error_kind"] == "auth"
    assert data["context"]["expired"] is True
    assert data["error_code"] == "AuthError"


def test_failure_records_from_exceptions():
    failure = SourceFailure.from_exception("S", RuntimeError("boom"))
    item = ItemError.from_exception("S", ParseError("S", "entry", "no link"), "entry #1")
    result = AggregationResult.failed("S", NetworkError("S", "https://x", "refused"))

    assert failure.error_kind == ErrorKind.UNEXPECTED
    assert "RuntimeError" in failure.message
    assert item.to_dict()["item"] == "entry #1"
    assert not result.succeeded
    assert result.articles == ()


def test_url_helpers():
    assert is_valid_url("https://example.com/a")
    assert not is_valid_url("mailto:someone@example.com")
    assert canonicalize_url("https://EXAMPLE.com") == "https://example.com/"
    assert canonicalize_url("https://example.com/a?ref=home&page=2") == "https://example.com/a?page=2"
    assert domain_of("https://Sub.Example.com:8080/x") == "sub.example.com"


def test_http_response_ok():
    assert make_response("https://example.com", status=302).ok
    assert not make_response("https://example.com", status=404).ok


@pytest.mark.parametrize("field_name", ["fetched_at", "published"])
def test_article_rejects_naive_datetimes(field_name):
    values = {"fetched_at": datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc), field_name: datetime(2024, 5, 1, 9, 0)}

    with pytest.raises(ContractViolation):
        Article(
            id=generate_stable_id(Article, "Outlet A", "https://example.com/a"),
            source_name="Outlet A",
            source_domain="example.com",
            url="https://example.com/a",
            title="Title",
            **values
        )

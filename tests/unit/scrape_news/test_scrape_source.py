"""Tests for scrape_news.scrape_source module."""

import threading
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from scrape_news.exceptions import (
    DuplicateArticleError,
    FetchError,
    ParseError,
    PersistError,
    PublishError,
)
from scrape_news.models import ArticleEvent
from scrape_news.publish_event import EventPublisher
from scrape_news.scrape_source import scrape_source
from scrape_news.store import ArticleStore

from feed_fixtures import build_rss, make_item, persisted_from

FEED_URL = "https://feed-a.test/rss"


@pytest.fixture
def mock_store() -> Mock:
    store = Mock(spec=ArticleStore)
    store.is_known_url.return_value = False
    store.insert_article.side_effect = lambda item, published_at: persisted_from(item, published_at)
    return store


def _feed(*items: dict) -> bytes:
    return build_rss("Example News", list(items))


def _item(n: int, **overrides) -> dict:
    item = {
        "title": f"Story {n}",
        "link": f"https://example.com/{n}",
        "description": f"About story {n}",
        "pubDate": "Mon, 01 Jan 2024 12:00:00 GMT",
    }
    item.update(overrides)
    return item


class TestScrapeSource:
    @patch("scrape_news.scrape_source.fetch_feed")
    def test_persists_and_publishes_new_articles(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1), _item(2))

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert result.persisted == 2
        assert result.error is None
        assert publisher.publish.call_count == 2
        event = publisher.publish.call_args_list[0].args[0]
        assert event == ArticleEvent(id=1, title="Story 1", url="https://example.com/1", source="Example News")
        mock_fetch.assert_called_once_with(FEED_URL, timeout=config.fetch_timeout_seconds, user_agent=config.user_agent)

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_processes_items_in_feed_order(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(3), _item(1), _item(2))

        scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        urls = [c.args[0].url for c in mock_store.insert_article.call_args_list]
        assert urls == ["https://example.com/3", "https://example.com/1", "https://example.com/2"]

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_skips_known_articles(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1))
        mock_store.is_known_url.return_value = True

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert result.known == 1
        mock_store.insert_article.assert_not_called()
        publisher.publish.assert_not_called()

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_skips_malformed_items(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1, title=""), _item(2, link=""), _item(3))

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert result.malformed == 2
        assert result.persisted == 1
        saved = [c.args[0].url for c in mock_store.insert_article.call_args_list]
        assert saved == ["https://example.com/3"]

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_lookup_failure_still_attempts_insert(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1))
        mock_store.is_known_url.return_value = None

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert result.persisted == 1
        mock_store.insert_article.assert_called_once()

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_unparseable_date_falls_back_to_now(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1, pubDate="yesterday-ish"), _item(2))
        started = datetime.now(timezone.utc)

        scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        first, second = mock_store.insert_article.call_args_list
        assert first.args[1] >= started
        assert second.args[1] == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_fetch_error_is_recorded(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.side_effect = FetchError(FEED_URL, "connection refused")

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert isinstance(result.error, FetchError)
        assert result.failed
        mock_store.insert_article.assert_not_called()

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_parse_error_is_recorded(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = b"<rss><channel><item></channel>"

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert isinstance(result.error, ParseError)
        mock_store.is_known_url.assert_not_called()

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_duplicate_insert_is_benign(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1))
        mock_store.insert_article.side_effect = DuplicateArticleError("https://example.com/1")

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert result.duplicates == 1
        assert result.persist_errors == 0
        assert result.error is None
        publisher.publish.assert_not_called()

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_persist_error_skips_only_that_article(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1), _item(2))

        def insert(item, published_at):
            if item.url.endswith("/1"):
                raise PersistError(item.url, "connection lost")
            return persisted_from(item, published_at, article_id=2)

        mock_store.insert_article.side_effect = insert

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert result.persist_errors == 1
        assert result.persisted == 1
        publisher.publish.assert_called_once()
        assert publisher.publish.call_args.args[0].url == "https://example.com/2"

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_publish_error_does_not_stop_feed(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1), _item(2))
        publisher.publish.side_effect = [PublishError("https://example.com/1", "timeout"), None]

        result = scrape_source(FEED_URL, mock_store, publisher, config, threading.Event())

        assert result.publish_errors == 1
        assert result.persisted == 2
        assert mock_store.insert_article.call_count == 2

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_stop_before_start_does_nothing(self, mock_fetch, mock_store, publisher, config) -> None:
        stop_event = threading.Event()
        stop_event.set()

        result = scrape_source(FEED_URL, mock_store, publisher, config, stop_event)

        assert result.cancelled
        mock_fetch.assert_not_called()

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_stop_between_articles(self, mock_fetch, mock_store, publisher, config) -> None:
        mock_fetch.return_value = _feed(_item(1), _item(2), _item(3))
        stop_event = threading.Event()
        publisher.publish.side_effect = lambda event: stop_event.set()

        result = scrape_source(FEED_URL, mock_store, publisher, config, stop_event)

        assert result.cancelled
        assert result.persisted == 1
        assert mock_store.insert_article.call_count == 1


class TestScrapeSourceWithStore:
    @patch("scrape_news.scrape_source.fetch_feed")
    def test_known_malformed_and_new(self, mock_fetch, store, publisher, config) -> None:
        store.insert_article(make_item(url="https://example.com/1"), datetime.now(timezone.utc))
        mock_fetch.return_value = _feed(_item(1), _item(2, link=""), _item(3))

        result = scrape_source(FEED_URL, store, publisher, config, threading.Event())

        assert result.known == 1
        assert result.malformed == 1
        assert result.persisted == 1
        assert store.count() == 2
        publisher.publish.assert_called_once()
        assert publisher.publish.call_args.args[0].url == "https://example.com/3"

    @patch("scrape_news.scrape_source.fetch_feed")
    def test_closed_producer_skips_only_the_event(self, mock_fetch, mock_store, config) -> None:
        mock_fetch.return_value = _feed(_item(1), _item(2))
        producer = Mock()
        producer.send.side_effect = AssertionError("KafkaProducer already closed!")

        result = scrape_source(FEED_URL, mock_store, EventPublisher(producer), config, threading.Event())

        assert result.publish_errors == 2
        assert result.persisted == 2
        assert result.error is None

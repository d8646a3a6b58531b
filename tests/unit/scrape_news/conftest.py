"""Shared fixtures for scrape_news tests."""

from unittest.mock import Mock

import pytest

from scrape_news.config import Config, reset_config, set_config
from scrape_news.db.connection import build_engine
from scrape_news.publish_event import EventPublisher
from scrape_news.store import ArticleStore


@pytest.fixture
def config() -> Config:
    return Config(
        sources=["https://feed-a.test/rss", "https://feed-b.test/rss"],
        scrape_interval_seconds=60,
        max_concurrency=4,
        fetch_timeout_seconds=5,
        publish_timeout_seconds=1,
        shutdown_timeout_seconds=5,
        database_url="sqlite://",
    )


@pytest.fixture(autouse=True)
def global_config(config):
    set_config(config)
    yield config
    reset_config()


@pytest.fixture
def store(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'articles.db'}")
    article_store = ArticleStore(engine)
    article_store.ensure_schema()
    yield article_store
    engine.dispose()


@pytest.fixture
def publisher() -> Mock:
    return Mock(spec=EventPublisher)

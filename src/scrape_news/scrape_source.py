"""Scraping of a single feed source: fetch, parse, dedup, save, publish."""

import logging
import threading
import time
from datetime import datetime, timezone

from scrape_news.config import Config
from scrape_news.exceptions import (
    DuplicateArticleError,
    FetchError,
    ParseError,
    PersistError,
    PublishError,
)
from scrape_news.fetch_feed import fetch_feed
from scrape_news.models import ArticleEvent, FeedItem, SourceResult
from scrape_news.parse_feed import parse_feed
from scrape_news.publish_event import EventPublisher
from scrape_news.store import ArticleStore

logger = logging.getLogger(__name__)


def scrape_source(
    feed_url: str,
    store: ArticleStore,
    publisher: EventPublisher,
    config: Config,
    stop_event: threading.Event,
) -> SourceResult:
    """Scrape one feed and save/publish every article not seen before.

    Failures are logged and recorded on the returned result, never raised.
    Articles are handled one at a time in feed order, and the stop event is
    checked before each of them.
    """
    result = SourceResult(feed_url=feed_url)
    if stop_event.is_set():
        result.cancelled = True
        return result

    logger.info("Scraping source: %s", feed_url)
    start_time = time.monotonic()

    try:
        content = fetch_feed(feed_url, timeout=config.fetch_timeout_seconds, user_agent=config.user_agent)
        feed = parse_feed(content, feed_url)
    except (FetchError, ParseError) as e:
        logger.error("%s", e)
        result.error = e
        return result

    for item in feed.items:
        if stop_event.is_set():
            logger.info("Stop requested, abandoning %s", feed_url)
            result.cancelled = True
            break
        _process_item(item, store, publisher, result)

    elapsed = time.monotonic() - start_time
    logger.info(
        "Scraped %s: %d new, %d known, %d malformed, %d duplicates, %d errors in %.2fs",
        feed_url,
        result.persisted,
        result.known,
        result.malformed,
        result.duplicates,
        result.persist_errors + result.publish_errors,
        elapsed,
    )
    return result


def _process_item(
    item: FeedItem,
    store: ArticleStore,
    publisher: EventPublisher,
    result: SourceResult,
) -> None:
    if not item.is_well_formed:
        logger.debug("Skipping malformed item in %s: title=%r url=%r", result.feed_url, item.title, item.url)
        result.malformed += 1
        return

    # None means the lookup failed; let the insert decide
    if store.is_known_url(item.url):
        result.known += 1
        return

    published_at = item.published_at or datetime.now(timezone.utc)
    try:
        article = store.insert_article(item, published_at)
    except DuplicateArticleError:
        logger.debug("Skipping duplicate article: %s", item.url)
        result.duplicates += 1
        return
    except PersistError as e:
        logger.error("Source %s: %s", result.feed_url, e)
        result.persist_errors += 1
        return

    result.persisted += 1
    logger.info("Collected article: %s", article.title)

    try:
        publisher.publish(ArticleEvent.from_article(article))
    except PublishError as e:
        logger.error("Source %s: %s", result.feed_url, e)
        result.publish_errors += 1

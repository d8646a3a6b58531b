"""One scraping cycle over all configured sources."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from scrape_news.config import Config
from scrape_news.exceptions import ScrapeError
from scrape_news.models import CycleResult, SourceResult
from scrape_news.publish_event import EventPublisher
from scrape_news.scrape_source import scrape_source
from scrape_news.store import ArticleStore

logger = logging.getLogger(__name__)


def run_cycle(
    sources: list[str],
    store: ArticleStore,
    publisher: EventPublisher,
    config: Config,
    stop_event: threading.Event,
) -> CycleResult:
    """Scrape every source concurrently and wait for all of them to finish.

    At most ``config.max_concurrency`` sources run at the same time. A source
    that fails, even with an unexpected exception, does not affect the others.
    """
    result = CycleResult(started_at=datetime.now(timezone.utc))
    feed_urls = [source.strip() for source in sources if source and source.strip()]

    logger.info("Starting news scraping cycle (%d sources)", len(feed_urls))
    if not feed_urls:
        logger.warning("No sources configured")
        result.finished_at = datetime.now(timezone.utc)
        return result

    workers = min(config.max_concurrency, len(feed_urls))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scrape") as executor:
        futures = {
            executor.submit(scrape_source, url, store, publisher, config, stop_event): url
            for url in feed_urls
        }
        for future in as_completed(futures):
            url = futures[future]
            try:
                result.sources.append(future.result())
            except Exception as e:
                logger.exception("Unexpected error while scraping %s", url)
                result.sources.append(SourceResult(feed_url=url, error=ScrapeError(str(e))))

    result.finished_at = datetime.now(timezone.utc)
    elapsed = (result.finished_at - result.started_at).total_seconds()
    logger.info(
        "News scraping cycle completed: %d new articles from %d sources in %.2fs",
        result.persisted,
        len(feed_urls),
        elapsed,
    )
    if result.failed_sources:
        logger.warning("Failed sources: %s", result.failed_sources)
    return result

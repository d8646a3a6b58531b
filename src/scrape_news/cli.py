"""CLI entry point for the news scraper."""

import argparse
import logging
import signal
import sys

from kafka.errors import KafkaError
from sqlalchemy.exc import SQLAlchemyError

from common.cli_helpers import parse_csv_list, setup_logging
from scrape_news.config import load_config, set_config
from scrape_news.db.connection import build_engine
from scrape_news.publish_event import EventPublisher
from scrape_news.scheduler import Scheduler, SchedulerState
from scrape_news.store import ArticleStore

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape RSS feeds into the article store")
    parser.add_argument(
        "--config",
        default=None,
        help="Config name in configs/ or path to a YAML file (default: environment only).",
    )
    parser.add_argument(
        "--sources",
        default=None,
        help="Comma-separated feed URLs, overriding the configured sources.",
    )
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        setup_logging()
        logger.error("Invalid configuration: %s", e)
        return 1
    set_config(config)
    try:
        setup_logging(args.log_level or config.log_level)
    except ValueError as e:
        setup_logging()
        logger.error("Invalid configuration: %s", e)
        return 1

    sources = parse_csv_list(args.sources) or config.sources
    if not sources:
        logger.error("No sources configured (set NEWS_SOURCES or --sources)")
        return 1

    engine = build_engine(config.database_url)
    store = ArticleStore(engine)
    try:
        store.ensure_schema()
    except SQLAlchemyError as e:
        logger.error("Failed to connect to database: %s", e)
        engine.dispose()
        return 1

    try:
        publisher = EventPublisher.from_brokers(
            config.kafka_brokers,
            topic=config.kafka_topic,
            timeout=config.publish_timeout_seconds,
        )
    except KafkaError as e:
        logger.error("Failed to connect to Kafka brokers %s: %s", config.kafka_brokers, e)
        engine.dispose()
        return 1

    scheduler = Scheduler(store, publisher, config, sources=sources)
    try:
        if args.once:
            result = scheduler.run_once()
            return 1 if len(result.failed_sources) == len(result.sources) else 0

        def handle_signal(signum, frame):
            logger.info("Received %s", signal.Signals(signum).name)
            scheduler.stop()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

        scheduler.start()
        while scheduler.state is SchedulerState.RUNNING:
            scheduler.join(timeout=1.0)
        return 0
    finally:
        publisher.close()
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())

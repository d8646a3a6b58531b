"""Publishing of new-article events to Kafka."""

import json
import logging

from kafka import KafkaProducer
from kafka.errors import KafkaError

from scrape_news.exceptions import PublishError
from scrape_news.models import ArticleEvent

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "news_updates"


def build_producer(brokers: list[str], timeout: float) -> KafkaProducer:
    """Create a producer that waits for full acknowledgement of each send."""
    return KafkaProducer(
        bootstrap_servers=brokers,
        acks="all",
        key_serializer=lambda key: key.encode("utf-8"),
        value_serializer=lambda value: json.dumps(value, ensure_ascii=False).encode("utf-8"),
        max_block_ms=int(timeout * 1000),
    )


class EventPublisher:
    """Sends one message per newly saved article, keyed by ``news_<id>``.

    Each send blocks until the broker acknowledges it or the timeout expires.
    Failed sends are not retried here.
    """

    def __init__(self, producer: KafkaProducer, topic: str = DEFAULT_TOPIC, timeout: float = 10):
        self.producer = producer
        self.topic = topic
        self.timeout = timeout

    @classmethod
    def from_brokers(cls, brokers: list[str], topic: str = DEFAULT_TOPIC, timeout: float = 10) -> "EventPublisher":
        return cls(build_producer(brokers, timeout), topic=topic, timeout=timeout)

    def publish(self, event: ArticleEvent) -> None:
        """Deliver an event to the topic.

        Raises:
            PublishError: if the send fails for any reason or is not
                acknowledged in time.
        """
        try:
            future = self.producer.send(self.topic, key=event.key, value=event.to_payload())
            metadata = future.get(timeout=self.timeout)
        except Exception as e:
            # kafka-python also raises AssertionError once the producer is closed
            raise PublishError(event.url, str(e) or type(e).__name__) from e

        logger.debug(
            "Published %s to %s (partition=%s, offset=%s)",
            event.key,
            self.topic,
            getattr(metadata, "partition", None),
            getattr(metadata, "offset", None),
        )

    def close(self) -> None:
        try:
            self.producer.flush(timeout=self.timeout)
        except KafkaError as e:
            logger.warning("Failed to flush pending events: %s", e)
        finally:
            self.producer.close(timeout=self.timeout)

"""Errors raised by the ingestion pipeline.

All of them are local to one source or one article: the worker logs them and
moves on, they never stop a cycle.
"""


class ScrapeError(Exception):
    """Base class for ingestion errors."""


class FetchError(ScrapeError):
    """Raised when a feed cannot be downloaded or returns a non-success status."""

    def __init__(self, feed_url: str, message: str):
        super().__init__(f"Failed to fetch feed {feed_url}: {message}")
        self.feed_url = feed_url


class ParseError(ScrapeError):
    """Raised when a feed document is malformed."""

    def __init__(self, feed_url: str, message: str):
        super().__init__(f"Failed to parse feed {feed_url}: {message}")
        self.feed_url = feed_url


class PersistError(ScrapeError):
    """Raised when an article cannot be written to the store."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Failed to save article {url}: {message}")
        self.url = url


class DuplicateArticleError(PersistError):
    """Raised when the store already holds an article with the same URL."""

    def __init__(self, url: str):
        super().__init__(url, "duplicate url")


class PublishError(ScrapeError):
    """Raised when an article event cannot be delivered to the message bus."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Failed to publish article {url}: {message}")
        self.url = url

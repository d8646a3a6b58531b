"""Data models for the scrape_news pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from scrape_news.exceptions import ScrapeError


@dataclass
class FeedItem:
    """Article candidate parsed from a feed item."""
    source: str
    title: str
    description: str
    url: str
    published_at: Optional[datetime]

    @property
    def is_well_formed(self) -> bool:
        return bool(self.title) and bool(self.url)


@dataclass
class ParsedFeed:
    """Channel metadata plus its items in document order."""
    title: str
    description: str
    items: list[FeedItem] = field(default_factory=list)


@dataclass
class PersistedArticle:
    """Article as written to the store, with its generated id."""
    id: int
    title: str
    description: str
    url: str
    source: str
    published_at: datetime
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ArticleEvent:
    """Notification sent to the message bus for a newly saved article."""
    id: int
    title: str
    url: str
    source: str

    @classmethod
    def from_article(cls, article: PersistedArticle) -> "ArticleEvent":
        return cls(id=article.id, title=article.title, url=article.url, source=article.source)

    @property
    def key(self) -> str:
        return f"news_{self.id}"

    def to_payload(self) -> dict:
        return {"id": self.id, "title": self.title, "url": self.url, "source": self.source}


@dataclass
class SourceResult:
    """Outcome of scraping one feed source."""
    feed_url: str
    persisted: int = 0
    known: int = 0
    malformed: int = 0
    duplicates: int = 0
    persist_errors: int = 0
    publish_errors: int = 0
    error: Optional[ScrapeError] = None
    cancelled: bool = False

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class CycleResult:
    """Outcome of one scraping cycle across all sources."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    sources: list[SourceResult] = field(default_factory=list)

    @property
    def persisted(self) -> int:
        return sum(result.persisted for result in self.sources)

    @property
    def failed_sources(self) -> list[str]:
        return [result.feed_url for result in self.sources if result.failed]

"""Article store: the dedup pre-check and the write path.

The unique constraint on ``articles.url`` is what actually guarantees one row
per URL. ``is_known_url`` only saves pointless inserts; two workers racing on
the same URL both reach ``insert_article`` and the second one gets a
``DuplicateArticleError``.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from scrape_news.db.connection import build_session_factory, session_scope
from scrape_news.db.models import Article, Base
from scrape_news.exceptions import DuplicateArticleError, PersistError
from scrape_news.models import FeedItem, PersistedArticle

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class ArticleStore:
    """Access to the ``articles`` table for the ingestion pipeline."""

    def __init__(self, engine: Engine):
        dialect = engine.dialect.name
        if dialect not in _INSERTS:
            raise ValueError(f"Unsupported database dialect: {dialect}")
        self.engine = engine
        self._insert = _INSERTS[dialect]
        self._session_factory = build_session_factory(engine)

    def ensure_schema(self) -> None:
        """Create the articles table and its indexes if they don't exist."""
        Base.metadata.create_all(self.engine)

    def is_known_url(self, url: str) -> Optional[bool]:
        """Return whether an article with this URL is already stored.

        Returns None when the lookup itself fails, in which case the caller
        should go ahead with the insert.
        """
        try:
            with session_scope(self._session_factory) as session:
                row = session.execute(
                    select(Article.id).where(Article.url == url).limit(1)
                ).first()
        except SQLAlchemyError as e:
            logger.warning("Dedup lookup failed for %s: %s", url, e)
            return None
        return row is not None

    def insert_article(self, item: FeedItem, published_at: datetime) -> PersistedArticle:
        """Insert a new article row.

        Raises:
            DuplicateArticleError: if the URL is already stored.
            PersistError: on any other database failure.
        """
        now = datetime.now(timezone.utc)
        values = {
            "title": item.title,
            "description": item.description,
            "url": item.url,
            "source": item.source,
            "published_at": published_at,
            "created_at": now,
            "updated_at": now,
        }
        stmt = (
            self._insert(Article)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["url"])
            .returning(Article.id)
        )

        try:
            with session_scope(self._session_factory) as session:
                article_id = session.execute(stmt).scalar()
        except SQLAlchemyError as e:
            raise PersistError(item.url, str(e)) from e

        if article_id is None:
            raise DuplicateArticleError(item.url)

        return PersistedArticle(id=article_id, **values)

    def count(self) -> int:
        with session_scope(self._session_factory) as session:
            return session.scalar(select(func.count()).select_from(Article))

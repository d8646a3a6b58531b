"""Feed document parsing."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import feedparser
from dateutil.parser import parse as parse_date

from scrape_news.exceptions import ParseError
from scrape_news.models import FeedItem, ParsedFeed

logger = logging.getLogger(__name__)

RFC1123_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"

# A date is only accepted with a full calendar date and a time of day
RFC822_DATE = re.compile(
    r"^(?:[A-Za-z]{3},\s*)?\d{1,2}\s+[A-Za-z]{3}\s+\d{2,4}\s+\d{1,2}:\d{2}(?::\d{2})?(?:\s+\S+)?$"
)
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")

# Timezone abbreviations for date parsing
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
}

# feedparser sets bozo for these but the document is still usable
_BENIGN_BOZO = (
    feedparser.CharacterEncodingOverride,
    feedparser.NonXMLContentType,
)


def parse_feed(content: bytes, feed_url: str) -> ParsedFeed:
    """Decode a feed document into channel metadata and article candidates.

    Items keep their document order. Candidates are not validated here, so
    entries with an empty title or link are returned as-is.

    Raises:
        ParseError: if the document is not a well-formed feed.
    """
    try:
        feed = feedparser.parse(content)
    except Exception as e:
        raise ParseError(feed_url, str(e)) from e

    if feed.get("bozo"):
        exc = feed.get("bozo_exception")
        if not isinstance(exc, _BENIGN_BOZO):
            raise ParseError(feed_url, str(exc) if exc else "invalid document")

    channel = feed.get("feed", {})
    channel_title = (channel.get("title") or "").strip()
    entries = feed.get("entries", [])
    if not channel_title and not entries:
        raise ParseError(feed_url, "document has no channel")

    source = channel_title or feed_url
    items = [_parse_entry(entry, source) for entry in entries]
    return ParsedFeed(
        title=channel_title,
        description=clean_text(channel.get("description")),
        items=items,
    )


def _parse_entry(entry, source: str) -> FeedItem:
    """Parse a single feed entry into a FeedItem."""
    return FeedItem(
        source=source,
        title=(entry.get("title") or "").strip(),
        description=clean_text(entry.get("summary") or entry.get("description")),
        url=(entry.get("link") or "").strip(),
        published_at=parse_published_date(entry.get("published") or entry.get("updated")),
    )


def parse_published_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a feed publication date.

    RFC-1123 is tried first, then a tolerant parse that also understands
    numeric offsets, common timezone abbreviations and ISO 8601. Values without
    a full date and time (e.g. "00:00" or "2019") are rejected. Naive results
    are taken as UTC. Returns None if the value is missing or unparseable.
    """
    if not value:
        return None
    value = value.strip()

    try:
        dt = datetime.strptime(value, RFC1123_FORMAT)
    except ValueError:
        dt = None

    if dt is None:
        if not (RFC822_DATE.match(value) or ISO_DATE.match(value)):
            logger.debug("Incomplete publish date %r", value)
            return None
        try:
            dt = parse_date(value, tzinfos=TZINFOS)
        except (ValueError, OverflowError) as e:
            logger.debug("Unparseable publish date %r: %s", value, e)
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def clean_text(text: Optional[str]) -> str:
    """Strip HTML tags and collapse whitespace."""
    if not text:
        return ""
    # Strip HTML tags (keep text content)
    text = re.sub(r"<[^>]+>", " ", text)
    # Collapse whitespace
    return re.sub(r"\s+", " ", text).strip()

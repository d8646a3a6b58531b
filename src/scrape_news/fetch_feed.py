"""HTTP fetching of feed documents."""

import logging

import requests

from scrape_news.config import get_config
from scrape_news.exceptions import FetchError

logger = logging.getLogger(__name__)


def fetch_feed(
    feed_url: str,
    timeout: float | None = None,
    user_agent: str | None = None,
    session: requests.Session | None = None,
) -> bytes:
    """Download a feed document and return its raw bytes.

    ``timeout`` and ``user_agent`` default to the current configuration.

    Raises:
        FetchError: on connection errors, timeouts or non-2xx responses.
    """
    if timeout is None or user_agent is None:
        config = get_config()
        timeout = config.fetch_timeout_seconds if timeout is None else timeout
        user_agent = user_agent or config.user_agent

    http = session or requests
    try:
        response = http.get(
            feed_url,
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(feed_url, str(e)) from e

    logger.debug("Fetched %d bytes from %s", len(response.content), feed_url)
    return response.content

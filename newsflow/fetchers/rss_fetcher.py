from __future__ import annotations

import calendar
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any

import feedparser
import requests

from newsflow.fetchers.utils import decode_html_entities, fallback_image
from newsflow.models.types import CandidateItem, SourceConfig

logger = logging.getLogger(__name__)

_HTTP_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; NewsflowFetcher/1.0)",
    "Accept": "application/rss+xml, application/xml, text/xml",
}


class RSSFetcher:

    def __init__(
        self,
        session: requests.Session | None = None,
        items_per_feed: int = 5,
        timeout: float = 15,
    ) -> None:
        self._session = session or requests.Session()
        self._items_per_feed = items_per_feed
        self._timeout = timeout

    def fetch_source(self, source: SourceConfig) -> list[CandidateItem]:
        logger.info("Fetching RSS feed: %s", source.feed_url)
        response = self._session.get(
            source.feed_url, headers=_HTTP_HEADERS, timeout=self._timeout
        )
        if not response.ok:
            logger.error(
                "Failed to fetch %s: HTTP %s", source.feed_url, response.status_code
            )
            return []

        feed = feedparser.parse(response.content)
        items: list[CandidateItem] = []
        for entry in feed.entries[: self._items_per_feed]:
            item = self._parse_entry(entry, source)
            if item is not None:
                items.append(item)

        logger.info("Fetched %d articles from %s", len(items), source.source_name)
        return items

    @staticmethod
    def _parse_entry(entry: Any, source: SourceConfig) -> CandidateItem | None:
        title = decode_html_entities((entry.get("title") or "").strip())
        link = (entry.get("link") or "").strip()
        if not title or not link:
            return None

        return CandidateItem(
            title=title,
            url=link,
            source_name=source.source_name,
            category=source.category,
            image_url=_extract_image(entry) or fallback_image(source.category),
            published_at=_parse_published(entry),
        )


def _extract_image(entry: Any) -> str | None:
    for enclosure in entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href and (enclosure.get("type") or "").startswith("image"):
            return href

    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            if media.get("url"):
                return media["url"]

    return None


def _parse_published(entry: Any) -> datetime | None:
    parsed = entry.get("published_parsed")
    # membership avoids feedparser's updated -> published alias and its warning
    if not parsed and "updated_parsed" in entry:
        parsed = entry["updated_parsed"]
    if not parsed:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def fetch_all_feeds(
    fetcher: RSSFetcher,
    sources: list[SourceConfig],
    max_workers: int = 8,
) -> list[CandidateItem]:
    """Fetch every source concurrently; a failing source contributes nothing."""
    if not sources:
        return []

    items: list[CandidateItem] = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(sources)))) as pool:
        futures = {pool.submit(fetcher.fetch_source, source): source for source in sources}
        for future in as_completed(futures):
            source = futures[future]
            try:
                items.extend(future.result())
            except Exception as exc:
                logger.error("Error fetching %s: %s", source.feed_url, exc)

    logger.info("Total RSS articles fetched: %d", len(items))
    return items

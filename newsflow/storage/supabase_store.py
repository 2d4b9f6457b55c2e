"""Article store backed by a Supabase ``processed_articles`` table.

Talks to the PostgREST API directly with requests. A unique constraint on
``url`` in the table turns a duplicate insert into HTTP 409.
"""
from __future__ import annotations

import logging

import requests

from newsflow.models.types import PersistResult, ProcessedArticle

logger = logging.getLogger(__name__)

TABLE = "processed_articles"
PAGE_SIZE = 1000


class SupabaseStore:

    def __init__(
        self,
        base_url: str,
        service_key: str,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1/{TABLE}"
        self._service_key = service_key
        self._session = session or requests.Session()
        self._timeout = timeout

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def list_urls(self) -> set[str]:
        """Raises requests.HTTPError when the store cannot be read."""
        urls: set[str] = set()
        offset = 0
        while True:
            response = self._session.get(
                self._rest_url,
                headers={**self._headers(), "Range": f"{offset}-{offset + PAGE_SIZE - 1}"},
                params={"select": "url"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            rows = response.json()
            urls.update(row["url"] for row in rows if row.get("url"))
            if len(rows) < PAGE_SIZE:
                break
            offset += PAGE_SIZE

        logger.info("Existing articles in store: %d", len(urls))
        return urls

    def insert_article(self, article: ProcessedArticle) -> PersistResult:
        try:
            response = self._session.post(
                self._rest_url,
                headers=self._headers(prefer="return=minimal"),
                json=article.to_row(),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Error inserting article %s: %s", article.url, exc)
            return PersistResult(ok=False, error=str(exc))

        if response.status_code == 409:
            logger.error("Article already stored: %s", article.url)
            return PersistResult(ok=False, error="duplicate url")
        if not response.ok:
            logger.error(
                "Error inserting article %s: HTTP %s %s",
                article.url,
                response.status_code,
                response.text[:200],
            )
            return PersistResult(ok=False, error=f"HTTP {response.status_code}")
        return PersistResult(ok=True)

    def close(self) -> None:
        self._session.close()

from __future__ import annotations

import logging

import requests

from newsflow.models.types import ScrapedContent, ScrapeResult

logger = logging.getLogger(__name__)

MISSING_CREDENTIAL = "missing credential"
INSUFFICIENT_CONTENT = "insufficient content"


class ContentScraper:
    """Client for a Firecrawl-compatible scraping service.

    Asks for the readability-extracted main content of a page as markdown.
    Never raises: every outcome is reported through ``ScrapeResult``.
    """

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://api.firecrawl.dev/v1/scrape",
        session: requests.Session | None = None,
        min_length: int = 100,
        timeout: float = 60,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._session = session or requests.Session()
        self._min_length = min_length
        self._timeout = timeout

    def scrape(self, url: str) -> ScrapeResult:
        if not self._api_key:
            logger.error("Scraper API key not configured, cannot scrape %s", url)
            return ScrapeResult(error=MISSING_CREDENTIAL)

        logger.info("Scraping URL: %s", url)
        try:
            response = self._session.post(
                self._endpoint,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={"url": url, "formats": ["markdown"], "onlyMainContent": True},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Error scraping %s: %s", url, exc)
            return ScrapeResult(error=str(exc))

        if response.status_code == 402:
            logger.warning("Scraper credits exhausted (402) for %s", url)
            return ScrapeResult(error="credits exhausted", credits_exhausted=True)

        if not response.ok:
            logger.error("Scraper error for %s: HTTP %s", url, response.status_code)
            return ScrapeResult(error=f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Scraper returned invalid JSON for %s: %s", url, exc)
            return ScrapeResult(error="invalid response")

        markdown = _extract_markdown(data)
        if len(markdown.strip()) < self._min_length:
            logger.info(
                "Scraped content too short for %s (%d chars)", url, len(markdown.strip())
            )
            return ScrapeResult(error=INSUFFICIENT_CONTENT)

        logger.info("Successfully scraped %s, content length: %d", url, len(markdown))
        return ScrapeResult(content=ScrapedContent(source_url=url, markdown_text=markdown))


def _extract_markdown(data: object) -> str:
    if not isinstance(data, dict):
        return ""
    nested = data.get("data")
    if isinstance(nested, dict) and isinstance(nested.get("markdown"), str):
        return nested["markdown"]
    markdown = data.get("markdown")
    return markdown if isinstance(markdown, str) else ""

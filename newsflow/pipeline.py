from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from newsflow.fetchers.rss_fetcher import RSSFetcher, fetch_all_feeds
from newsflow.fetchers.scraper import ContentScraper
from newsflow.models.types import (
    CandidateItem,
    PersistResult,
    ProcessedArticle,
    RunResult,
    SourceConfig,
    utc_now_iso,
)
from newsflow.processors.deduplicator import filter_new_items
from newsflow.processors.summarizer import SummaryGenerator
from newsflow.processors.verifier import VerificationClient, run_verification

logger = logging.getLogger(__name__)


class ArticleStore(Protocol):
    def list_urls(self) -> set[str]: ...

    def insert_article(self, article: ProcessedArticle) -> PersistResult: ...

    def close(self) -> None: ...


@dataclass
class PacingPolicy:
    """Artificial delays (seconds) that spread load on the external services."""

    base_delay: float = 0.5
    per_item_delay: float = 0.2
    verification_delay: float = 0.3
    correction_delay: float = 0.5

    def pre_summary_delay(self, index: int) -> float:
        return self.base_delay + index * self.per_item_delay

    @classmethod
    def none(cls) -> "PacingPolicy":
        return cls(0.0, 0.0, 0.0, 0.0)


class NewsPipeline:
    """One bounded batch: fetch, dedup, then scrape/summarise/verify/persist per item."""

    def __init__(
        self,
        fetcher: RSSFetcher,
        sources: list[SourceConfig],
        store: ArticleStore,
        scraper: ContentScraper,
        summarizer: SummaryGenerator,
        verifier: VerificationClient,
        pacing: PacingPolicy | None = None,
        batch_size: int = 10,
        verification_max_attempts: int = 3,
        max_stored_content: int = 50000,
        fetch_workers: int = 8,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._sources = sources
        self._store = store
        self._scraper = scraper
        self._summarizer = summarizer
        self._verifier = verifier
        self._pacing = pacing or PacingPolicy()
        self._batch_size = batch_size
        self._verification_max_attempts = verification_max_attempts
        self._max_stored_content = max_stored_content
        self._fetch_workers = fetch_workers
        self._sleep = sleep

    def run(self) -> RunResult:
        logger.info("Starting background news processing...")
        try:
            all_items = fetch_all_feeds(self._fetcher, self._sources, self._fetch_workers)
            existing_urls = self._store.list_urls()
            new_items = filter_new_items(all_items, existing_urls)
        except Exception as exc:
            logger.exception("Pipeline run failed: %s", exc)
            return RunResult(success=False, error=str(exc))

        result = RunResult(
            success=True,
            total_fetched=len(all_items),
            new_articles=len(new_items),
        )

        batch = new_items[: self._batch_size]
        for index, item in enumerate(batch):
            logger.info("Processing [%d/%d]: %s...", index + 1, len(batch), item.title[:50])
            try:
                self._process_item(index, item, result)
            except Exception as exc:
                logger.exception("Error processing article %s: %s", item.url, exc)
                result.failed += 1

        result.timestamp = utc_now_iso()
        logger.info(
            "Processing complete: fetched=%d new=%d processed=%d failed=%d rate_limited=%d",
            result.total_fetched,
            result.new_articles,
            result.processed,
            result.failed,
            result.rate_limited,
        )
        if result.scraper_credits_exhausted:
            logger.warning(
                "Scraper credits exhausted at %s; remaining articles were skipped",
                result.scraper_exhausted_at,
            )
        return result

    def _process_item(self, index: int, item: CandidateItem, result: RunResult) -> None:
        if result.scraper_credits_exhausted:
            logger.info("Skipping %s - scraper credits exhausted", item.url)
            result.failed += 1
            return

        scraped = self._scraper.scrape(item.url)
        if scraped.credits_exhausted:
            result.scraper_credits_exhausted = True
            result.scraper_exhausted_at = utc_now_iso()
        if scraped.content is None:
            logger.info("Skipping %s - %s", item.url, scraped.error)
            result.failed += 1
            return

        delay = self._pacing.pre_summary_delay(index)
        logger.debug("Waiting %.1fs before AI call...", delay)
        self._sleep(delay)

        summary = self._summarizer.summarize(item.title, scraped.content.markdown_text)
        if summary.text is None:
            # every summary failure counts toward rateLimited; the reason is only logged
            logger.info(
                "Skipping %s - failed to generate summary after %d attempts (%s)",
                item.url,
                summary.attempts,
                "rate limited" if summary.rate_limited else summary.error,
            )
            result.failed += 1
            result.rate_limited += 1
            return

        outcome = run_verification(
            self._verifier,
            item.title,
            scraped.content,
            summary.text,
            max_attempts=self._verification_max_attempts,
            delay=self._pacing.verification_delay,
            correction_delay=self._pacing.correction_delay,
            sleep=self._sleep,
        )

        article = ProcessedArticle.from_processing(
            item, scraped.content, outcome, self._max_stored_content
        )
        persisted = self._store.insert_article(article)
        if not persisted.ok:
            result.failed += 1
            return

        result.processed += 1
        logger.info("Saved: %s... [%s]", item.title[:50], outcome.status.upper())

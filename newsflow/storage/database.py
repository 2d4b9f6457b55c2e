from __future__ import annotations

import json
import logging
import sqlite3
import threading

from newsflow.models.types import PersistResult, ProcessedArticle

logger = logging.getLogger(__name__)


class Database:
    """SQLite article store. ``url`` is unique; rows are only ever inserted."""

    def __init__(self, db_path: str = "newsflow.db") -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._create_tables()

    def _create_tables(self) -> None:
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS processed_articles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    source TEXT,
                    category TEXT,
                    image_url TEXT,
                    full_content TEXT,
                    ai_summary TEXT,
                    pub_date TEXT,
                    ai_verification_status TEXT NOT NULL,
                    verification_logs TEXT NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            self._conn.commit()

    def list_urls(self) -> set[str]:
        with self._lock:
            cursor = self._conn.execute("SELECT url FROM processed_articles")
            rows = cursor.fetchall()
        urls = {row["url"] for row in rows}
        logger.info("Existing articles in DB: %d", len(urls))
        return urls

    def insert_article(self, article: ProcessedArticle) -> PersistResult:
        row = article.to_row()
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT INTO processed_articles "
                    "(url, title, source, category, image_url, full_content, ai_summary, "
                    "pub_date, ai_verification_status, verification_logs) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        row["url"],
                        row["title"],
                        row["source"],
                        row["category"],
                        row["image_url"],
                        row["full_content"],
                        row["ai_summary"],
                        row["pub_date"],
                        row["ai_verification_status"],
                        json.dumps(row["verification_logs"], ensure_ascii=False),
                    ),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            logger.error("Error inserting article %s: %s", article.url, exc)
            return PersistResult(ok=False, error=str(exc))
        return PersistResult(ok=True)

    # Read-back helpers for inspection and tests; the pipeline only writes.
    def get_article(self, url: str) -> dict | None:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT url, title, source, category, image_url, full_content, ai_summary, "
                "pub_date, ai_verification_status, verification_logs "
                "FROM processed_articles WHERE url = ?",
                (url,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return {
            "url": row["url"],
            "title": row["title"],
            "source": row["source"],
            "category": row["category"],
            "image_url": row["image_url"],
            "full_content": row["full_content"],
            "ai_summary": row["ai_summary"],
            "pub_date": row["pub_date"],
            "ai_verification_status": row["ai_verification_status"],
            "verification_logs": json.loads(row["verification_logs"]),
        }

    def count_articles(self) -> int:
        with self._lock:
            cursor = self._conn.execute("SELECT COUNT(*) FROM processed_articles")
            return cursor.fetchone()[0]

    def close(self) -> None:
        with self._lock:
            try:
                self._conn.commit()
                self._conn.close()
                logger.info("Database connection closed")
            except sqlite3.Error as exc:
                logger.error("Error closing database: %s", exc)

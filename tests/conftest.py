from __future__ import annotations

import os
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from newsflow.models.types import CandidateItem, ScrapedContent, SourceConfig
from newsflow.storage.database import Database

ARTICLE_TEXT = (
    "Prezydent Warszawy ogłosił w poniedziałek budowę nowej linii metra. "
    "Inwestycja ma kosztować 15 mln zł i zostać ukończona w 2030 roku. "
    "Radni poparli projekt większością głosów."
)


def make_response(status_code: int = 200, json_data=None, content: bytes = b"", text: str = ""):
    """A stand-in for requests.Response with the attributes the clients read."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = content
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def sample_source() -> SourceConfig:
    return SourceConfig(
        feed_url="https://example.pl/rss.xml",
        source_name="Example News",
        category="Wiadomości",
    )


@pytest.fixture
def sample_item() -> CandidateItem:
    """A fully-populated CandidateItem for use in tests."""
    return CandidateItem(
        title="Nowa linia metra w Warszawie",
        url="https://example.pl/news/metro",
        source_name="Example News",
        category="Wiadomości",
        image_url="https://example.pl/img/metro.jpg",
        published_at=datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def scraped_content() -> ScrapedContent:
    return ScrapedContent(source_url="https://example.pl/news/metro", markdown_text=ARTICLE_TEXT)


@pytest.fixture
def sleep_recorder() -> MagicMock:
    """Replaces time.sleep; records requested delays instead of waiting."""
    return MagicMock()


@pytest.fixture
def temp_database(tmp_path):
    """A Database backed by a temporary SQLite file, cleaned up after the test."""
    db_file = str(tmp_path / "test_newsflow.db")
    db = Database(db_path=db_file)
    yield db
    db.close()
    if os.path.exists(db_file):
        os.remove(db_file)

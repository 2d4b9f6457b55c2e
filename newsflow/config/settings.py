from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from newsflow.models.types import SourceConfig

load_dotenv()

CONFIG_FILE = Path("newsflow_config.json")

OPTIONAL_ENV_VARS = [
    "FIRECRAWL_API_KEY",
    "LLM_API_KEY",
    "VERIFY_SERVICE_KEY",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
]

DEFAULT_CONFIG: dict[str, Any] = {
    "sources": [
        {"url": "https://www.polsatnews.pl/rss/wszystkie.xml", "source": "Polsat News", "category": "Wiadomości"},
        {"url": "https://tvn24.pl/najnowsze.xml", "source": "TVN24", "category": "Wiadomości"},
        {"url": "https://wiadomosci.wp.pl/rss.xml", "source": "Wirtualna Polska", "category": "Wiadomości"},
        {"url": "https://www.rmf24.pl/fakty/feed", "source": "RMF24", "category": "Wiadomości"},
        {"url": "https://www.bankier.pl/rss/wiadomosci.xml", "source": "Bankier.pl", "category": "Biznes"},
        {"url": "https://www.money.pl/rss/rss.xml", "source": "Money.pl", "category": "Biznes"},
        {"url": "https://sportowefakty.wp.pl/rss.xml", "source": "Sportowe Fakty", "category": "Sport"},
        {"url": "https://www.chip.pl/feed", "source": "Chip.pl", "category": "Technologia"},
        {"url": "https://tech.wp.pl/rss.xml", "source": "WP Tech", "category": "Technologia"},
    ],
    "items_per_feed": 5,
    "batch_size": 10,
    "fetch_workers": 8,
    "min_content_length": 100,
    "max_prompt_chars": 8000,
    "max_stored_content": 50000,
    "summary_max_attempts": 3,
    "verification_max_attempts": 3,
    "summary_language": "Polish",
    "llm_model": "google/gemini-2.5-flash",
    "llm_max_tokens": 800,
    "pacing": {
        "base_delay": 0.5,
        "per_item_delay": 0.2,
        "verification_delay": 0.3,
        "correction_delay": 0.5,
    },
    "timeouts": {
        "feed": 15,
        "scrape": 60,
        "llm": 60,
        "verify": 90,
        "store": 30,
    },
    "schedule_interval_minutes": 30,
    "log_level": "INFO",
    "log_file": "newsflow.log",
}


@dataclass
class Settings:
    """Holds all pipeline configuration loaded from environment variables and config file."""

    firecrawl_api_key: str = ""
    llm_api_key: str = ""
    verify_service_key: str = ""
    supabase_url: str = ""
    supabase_service_key: str = ""
    store_backend: str = "sqlite"
    database_path: str = "newsflow.db"
    scraper_url: str = "https://api.firecrawl.dev/v1/scrape"
    llm_base_url: str = "https://ai.gateway.lovable.dev/v1"
    # empty: the app's own /verify-summary on the address it serves
    verify_service_url: str = ""
    sources: list[SourceConfig] = field(default_factory=list)
    items_per_feed: int = 5
    batch_size: int = 10
    fetch_workers: int = 8
    min_content_length: int = 100
    max_prompt_chars: int = 8000
    max_stored_content: int = 50000
    summary_max_attempts: int = 3
    verification_max_attempts: int = 3
    summary_language: str = "Polish"
    llm_model: str = "google/gemini-2.5-flash"
    llm_max_tokens: int = 800
    pacing: dict[str, float] = field(default_factory=dict)
    timeouts: dict[str, float] = field(default_factory=dict)
    schedule_interval_minutes: int = 30
    log_level: str = "INFO"
    log_file: str = "newsflow.log"

    def timeout(self, name: str) -> float:
        return float(self.timeouts.get(name, DEFAULT_CONFIG["timeouts"][name]))


def _load_config_file() -> dict[str, Any]:
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, encoding="utf-8") as f:
            user_config = json.load(f)
        merged = {**DEFAULT_CONFIG, **user_config}
        return merged
    return dict(DEFAULT_CONFIG)


def _read_env_vars() -> dict[str, str]:
    return {var: os.getenv(var, "") for var in OPTIONAL_ENV_VARS}


def load_settings() -> Settings:
    env_values = _read_env_vars()
    config = _load_config_file()

    store_backend = os.getenv("STORE_BACKEND", "sqlite").lower()
    if store_backend == "supabase" and not (
        env_values["SUPABASE_URL"] and env_values["SUPABASE_SERVICE_KEY"]
    ):
        raise EnvironmentError(
            "STORE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY. "
            "Please set them in your .env file or system environment."
        )

    return Settings(
        firecrawl_api_key=env_values["FIRECRAWL_API_KEY"],
        llm_api_key=env_values["LLM_API_KEY"],
        verify_service_key=env_values["VERIFY_SERVICE_KEY"],
        supabase_url=env_values["SUPABASE_URL"],
        supabase_service_key=env_values["SUPABASE_SERVICE_KEY"],
        store_backend=store_backend,
        database_path=os.getenv("DATABASE_PATH", "newsflow.db"),
        scraper_url=os.getenv("SCRAPER_URL", Settings.scraper_url),
        llm_base_url=os.getenv("LLM_BASE_URL") or Settings.llm_base_url,
        verify_service_url=os.getenv("VERIFY_SERVICE_URL", ""),
        sources=[SourceConfig.from_dict(s) for s in config.get("sources", DEFAULT_CONFIG["sources"])],
        items_per_feed=config.get("items_per_feed", DEFAULT_CONFIG["items_per_feed"]),
        batch_size=config.get("batch_size", DEFAULT_CONFIG["batch_size"]),
        fetch_workers=config.get("fetch_workers", DEFAULT_CONFIG["fetch_workers"]),
        min_content_length=config.get("min_content_length", DEFAULT_CONFIG["min_content_length"]),
        max_prompt_chars=config.get("max_prompt_chars", DEFAULT_CONFIG["max_prompt_chars"]),
        max_stored_content=config.get("max_stored_content", DEFAULT_CONFIG["max_stored_content"]),
        summary_max_attempts=config.get(
            "summary_max_attempts", DEFAULT_CONFIG["summary_max_attempts"]
        ),
        verification_max_attempts=config.get(
            "verification_max_attempts", DEFAULT_CONFIG["verification_max_attempts"]
        ),
        summary_language=config.get("summary_language", DEFAULT_CONFIG["summary_language"]),
        llm_model=os.getenv("LLM_MODEL", config.get("llm_model", DEFAULT_CONFIG["llm_model"])),
        llm_max_tokens=config.get("llm_max_tokens", DEFAULT_CONFIG["llm_max_tokens"]),
        pacing={**DEFAULT_CONFIG["pacing"], **config.get("pacing", {})},
        timeouts={**DEFAULT_CONFIG["timeouts"], **config.get("timeouts", {})},
        schedule_interval_minutes=config.get(
            "schedule_interval_minutes", DEFAULT_CONFIG["schedule_interval_minutes"]
        ),
        log_level=os.getenv("LOG_LEVEL") or config.get("log_level", DEFAULT_CONFIG["log_level"]),
        log_file=config.get("log_file", DEFAULT_CONFIG["log_file"]),
    )

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# Request-level chatter from the HTTP stacks under requests, openai and Flask.
QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "openai", "werkzeug")


def resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level!r}")
    return resolved


def setup_logging(level: int | str = "INFO", log_file: str | None = "newsflow.log") -> logging.Logger:
    """Configure the root logger once: stdout always, plus *log_file* when given."""
    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    if any(getattr(h, "newsflow_handler", False) for h in root.handlers):
        return root

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.newsflow_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root

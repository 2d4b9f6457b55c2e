from __future__ import annotations

import logging
from typing import Iterable

from newsflow.models.types import CandidateItem

logger = logging.getLogger(__name__)


def filter_new_items(
    items: Iterable[CandidateItem], existing_urls: set[str]
) -> list[CandidateItem]:
    """Keep items whose URL is not stored yet, first occurrence wins within the batch."""
    seen: set[str] = set()
    new_items: list[CandidateItem] = []
    for item in items:
        if item.url in existing_urls or item.url in seen:
            continue
        seen.add(item.url)
        new_items.append(item)

    logger.info("New articles to process: %d", len(new_items))
    return new_items

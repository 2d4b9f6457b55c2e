from __future__ import annotations

import logging
import time
from typing import Callable

import requests

from newsflow.models.types import (
    PENDING,
    REJECTED,
    VERIFIED,
    ScrapedContent,
    VerificationAttempt,
    VerificationOutcome,
)

logger = logging.getLogger(__name__)


class VerificationClient:
    """Calls the fact-checking service for one candidate summary.

    Service failures never raise; they come back as a ``pending`` attempt.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        session: requests.Session | None = None,
        timeout: float = 90,
    ) -> None:
        self._endpoint = endpoint
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout = timeout

    def verify(
        self,
        title: str,
        content: ScrapedContent,
        summary: str,
        attempt_number: int,
    ) -> VerificationAttempt:
        logger.info(
            "Calling verification service for: %s... (attempt %d)", title[:40], attempt_number
        )
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = self._session.post(
                self._endpoint,
                headers=headers,
                json={
                    "title": title,
                    "originalContent": content.markdown_text,
                    "aiSummary": summary,
                    "attemptNumber": attempt_number,
                },
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Verification error: %s", exc)
            return VerificationAttempt.pending(attempt_number, str(exc))

        if not response.ok:
            logger.error("Verification request failed: HTTP %s", response.status_code)
            return VerificationAttempt.pending(
                attempt_number, f"Verification service error: {response.status_code}"
            )

        try:
            return VerificationAttempt.from_payload(attempt_number, response.json())
        except (TypeError, ValueError) as exc:
            logger.error("Unusable verification response: %s", exc)
            return VerificationAttempt.pending(attempt_number, f"Invalid verification response: {exc}")


def run_verification(
    client: VerificationClient,
    title: str,
    content: ScrapedContent,
    summary: str,
    max_attempts: int = 3,
    delay: float = 0.3,
    correction_delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> VerificationOutcome:
    """Check *summary* against *content* until it is verified or attempts run out.

    A rejected summary is replaced by the service's corrected summary for the
    next attempt. A rejection without a correction retries the same text.
    Every attempt is appended to the returned log in order.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempts: list[VerificationAttempt] = []
    candidate = summary
    status = PENDING

    for attempt_number in range(1, max_attempts + 1):
        logger.info(
            "Verification attempt %d/%d for: %s...", attempt_number, max_attempts, title[:40]
        )
        sleep(delay)
        result = client.verify(title, content, candidate, attempt_number)
        attempts.append(result)
        final = attempt_number == max_attempts

        if result.is_valid and result.status == VERIFIED:
            logger.info("Summary VERIFIED on attempt %d", attempt_number)
            status = VERIFIED
            break

        if result.status == REJECTED:
            logger.info(
                "Summary REJECTED on attempt %d. Errors: %s",
                attempt_number,
                ", ".join(result.errors),
            )
            if final:
                status = REJECTED
                logger.info("Max verification attempts reached. Status: REJECTED")
            elif result.corrected_summary:
                logger.info("Using corrected summary for next attempt")
                candidate = result.corrected_summary
                sleep(correction_delay)
        else:
            logger.info("Verification pending (service issue) on attempt %d", attempt_number)
            if final:
                status = PENDING

    return VerificationOutcome(status=status, summary=candidate, attempts=attempts)

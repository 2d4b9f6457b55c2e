from __future__ import annotations

import logging
import time
from typing import Callable

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt

from newsflow.models.types import SummaryAttempt, SummaryResult
from newsflow.processors.llm_client import ChatClient, RateLimitedError, ServiceError

logger = logging.getLogger(__name__)

RATE_LIMIT_BASE_DELAY = 3.0
ERROR_BASE_DELAY = 1.0

SUMMARY_PROMPT = """You are a professional news editor. Summarise the article below.

TITLE: {title}

ARTICLE:
{content}

RULES:
- Open with the lead: answer who, what, where, when and why straight away.
- Do not write preambles such as "The article discusses..."; start with the facts.
- Wrap the most important facts, names, dates and figures in <b></b> tags.
- Write 3-10 information-dense sentences.
- Stay neutral and objective; use only facts stated in the article.
- Write in {language}.

Reply with the summary text only."""


def generation_backoff(attempt: int, rate_limited: bool) -> float:
    """Seconds to wait after failed attempt number *attempt* (1-based)."""
    base = RATE_LIMIT_BASE_DELAY if rate_limited else ERROR_BASE_DELAY
    return (2 ** attempt) * base


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class SummaryGenerator:
    """Produces an abstract for one article through the text-generation service."""

    def __init__(
        self,
        client: ChatClient,
        max_attempts: int = 3,
        max_prompt_chars: int = 8000,
        max_tokens: int = 800,
        language: str = "Polish",
        backoff: Callable[[int, bool], float] = generation_backoff,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._max_prompt_chars = max_prompt_chars
        self._max_tokens = max_tokens
        self._language = language
        self._backoff = backoff
        self._sleep = sleep

    def build_prompt(self, title: str, content: str) -> str:
        return SUMMARY_PROMPT.format(
            title=title,
            content=content[: self._max_prompt_chars],
            language=self._language,
        )

    def _wait(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        return self._backoff(retry_state.attempt_number, isinstance(exc, RateLimitedError))

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        if isinstance(exc, RateLimitedError):
            logger.info("Rate limited (429). Waiting %.1fs before retry...", delay)
        else:
            logger.info("Generation failed (%s). Waiting %.1fs before retry...", exc, delay)

    def summarize(self, title: str, content: str) -> SummaryResult:
        if not self._client.configured:
            logger.error("LLM API key not configured, cannot summarise '%s'", title[:40])
            return SummaryResult(error="missing credential")

        prompt = self.build_prompt(title, content)
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(ServiceError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        attempt_number = 0
        try:
            for attempt in retrying:
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    logger.info(
                        "Summary attempt %d/%d for: %s...",
                        attempt_number,
                        self._max_attempts,
                        title[:40],
                    )
                    text = _strip_code_fences(
                        self._client.complete(prompt, max_tokens=self._max_tokens, temperature=0)
                    )
                    if not text:
                        raise ServiceError("empty summary")
        except RateLimitedError as exc:
            logger.error("Giving up on '%s' after %d attempts: %s", title[:40], attempt_number, exc)
            return SummaryResult(attempts=attempt_number, rate_limited=True, error=str(exc))
        except ServiceError as exc:
            logger.error("Giving up on '%s' after %d attempts: %s", title[:40], attempt_number, exc)
            return SummaryResult(attempts=attempt_number, error=str(exc))

        logger.info("Generated summary on attempt %d", attempt_number)
        return SummaryResult(
            summary=SummaryAttempt(text=text, attempt_number=attempt_number),
            attempts=attempt_number,
        )

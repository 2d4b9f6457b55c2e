"""Tests for newsflow.processors.summarizer -- prompt, retry policy and backoff."""
from __future__ import annotations

import logging
from unittest.mock import MagicMock

from newsflow.processors.llm_client import RateLimitedError, ServiceError
from newsflow.processors.summarizer import SummaryGenerator, generation_backoff

from conftest import ARTICLE_TEXT


def _client(side_effect) -> MagicMock:
    client = MagicMock()
    client.configured = True
    client.complete.side_effect = side_effect
    return client


class TestGenerationBackoff:
    def test_rate_limited_waits(self):
        assert generation_backoff(1, True) == 6.0
        assert generation_backoff(2, True) == 12.0

    def test_error_waits(self):
        assert generation_backoff(1, False) == 2.0
        assert generation_backoff(2, False) == 4.0

    def test_rate_limited_wait_grows_with_attempt(self):
        waits = [generation_backoff(k, True) for k in range(1, 6)]
        assert all(later > earlier for earlier, later in zip(waits, waits[1:]))


class TestSummarize:
    def test_success_first_attempt(self, sleep_recorder):
        client = _client(["<b>Warszawa</b> buduje metro."])
        generator = SummaryGenerator(client, sleep=sleep_recorder)

        result = generator.summarize("Metro", ARTICLE_TEXT)

        assert result.ok
        assert result.text == "<b>Warszawa</b> buduje metro."
        assert result.attempts == 1
        sleep_recorder.assert_not_called()
        _, kwargs = client.complete.call_args
        assert kwargs["temperature"] == 0

    def test_rate_limited_twice_then_success(self, sleep_recorder):
        client = _client([RateLimitedError("429"), RateLimitedError("429"), "Streszczenie."])
        generator = SummaryGenerator(client, sleep=sleep_recorder)

        result = generator.summarize("Metro", ARTICLE_TEXT)

        assert result.ok
        assert result.summary.attempt_number == 3
        assert [c.args[0] for c in sleep_recorder.call_args_list] == [6.0, 12.0]

    def test_other_errors_use_shorter_backoff(self, sleep_recorder):
        client = _client([ServiceError("HTTP 500"), "Streszczenie."])
        generator = SummaryGenerator(client, sleep=sleep_recorder)

        assert generator.summarize("Metro", ARTICLE_TEXT).ok
        assert [c.args[0] for c in sleep_recorder.call_args_list] == [2.0]

    def test_exhaustion_returns_no_summary(self, sleep_recorder):
        client = _client([RateLimitedError("429")] * 3)
        generator = SummaryGenerator(client, sleep=sleep_recorder)

        result = generator.summarize("Metro", ARTICLE_TEXT)

        assert not result.ok
        assert result.text is None
        assert result.attempts == 3
        assert result.rate_limited is True
        assert client.complete.call_count == 3
        # no wait after the final attempt
        assert sleep_recorder.call_count == 2

    def test_wait_is_logged_only_before_real_retries(self, sleep_recorder, caplog):
        client = _client([RateLimitedError("429")] * 3)
        generator = SummaryGenerator(client, sleep=sleep_recorder)

        with caplog.at_level(logging.INFO, logger="newsflow.processors.summarizer"):
            generator.summarize("Metro", ARTICLE_TEXT)

        waits = [r.getMessage() for r in caplog.records if "before retry" in r.getMessage()]
        assert waits == [
            "Rate limited (429). Waiting 6.0s before retry...",
            "Rate limited (429). Waiting 12.0s before retry...",
        ]

    def test_custom_max_attempts_and_backoff(self, sleep_recorder):
        client = _client([ServiceError("boom")] * 5)
        generator = SummaryGenerator(
            client, max_attempts=5, backoff=lambda attempt, limited: 0.0, sleep=sleep_recorder
        )

        result = generator.summarize("Metro", ARTICLE_TEXT)

        assert not result.ok
        assert result.rate_limited is False
        assert client.complete.call_count == 5
        assert [c.args[0] for c in sleep_recorder.call_args_list] == [0.0] * 4

    def test_missing_credential_makes_no_call(self, sleep_recorder):
        client = MagicMock()
        client.configured = False
        result = SummaryGenerator(client, sleep=sleep_recorder).summarize("Metro", ARTICLE_TEXT)

        assert not result.ok
        assert result.error == "missing credential"
        client.complete.assert_not_called()

    def test_code_fences_are_stripped(self, sleep_recorder):
        client = _client(["```\nStreszczenie w ramce.\n```"])
        result = SummaryGenerator(client, sleep=sleep_recorder).summarize("Metro", ARTICLE_TEXT)
        assert result.text == "Streszczenie w ramce."


class TestBuildPrompt:
    def test_content_is_truncated(self):
        generator = SummaryGenerator(MagicMock(), max_prompt_chars=8000)
        prompt = generator.build_prompt("Tytuł", "a" * 9000 + "TAIL")
        assert "a" * 8000 in prompt
        assert "a" * 8001 not in prompt
        assert "TAIL" not in prompt

    def test_prompt_rules(self):
        prompt = SummaryGenerator(MagicMock(), language="Polish").build_prompt("Tytuł", ARTICLE_TEXT)
        assert "Tytuł" in prompt
        assert "<b></b>" in prompt
        assert "3-10" in prompt
        assert "Polish" in prompt

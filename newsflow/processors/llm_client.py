from __future__ import annotations

import logging

import openai
from openai import OpenAI

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """The text-generation service did not return a usable completion."""


class RateLimitedError(ServiceError):
    """The text-generation service answered HTTP 429."""


class ChatClient:
    """Chat-completions client for an OpenAI-compatible gateway.

    The SDK's own retries are disabled; callers decide when to retry.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 60,
        client: OpenAI | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        if client is None and api_key:
            client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._api_key) and self._client is not None

    def complete(self, prompt: str, max_tokens: int = 800, temperature: float = 0) -> str:
        """Send a single user message and return the completion text.

        Raises RateLimitedError on HTTP 429 and ServiceError on any other
        failure, including connection errors and empty completions.
        """
        if not self.configured:
            raise ServiceError("LLM API key not configured")

        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.RateLimitError as exc:
            raise RateLimitedError("rate limited (429)") from exc
        except openai.APIError as exc:
            raise ServiceError(f"completion request failed: {exc}") from exc

        if not response.choices:
            raise ServiceError("completion has no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise ServiceError("empty completion")
        return content

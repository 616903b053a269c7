"""Chat-completions HTTP client."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from prompt_relay.completion.base import DecodeError, HTTPStatusError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_COMPLETION_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_SECONDS = 300.0


class ChatCompletionClient:
    """Single-request chat completion client.

    One POST per prompt, no retries. The whole response body is returned as the
    task response.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        api_key: str,
        url: str = DEFAULT_COMPLETION_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.model = model
        self.temperature = temperature
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            transport=transport or httpx.HTTPTransport(retries=0),
        )

    def build_payload(self, prompt: str) -> dict[str, Any]:
        """Request body for one prompt."""

        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
        }

    def complete(self, prompt: str) -> str:
        try:
            response = self._client.post(self.url, json=self.build_payload(prompt))
        except httpx.DecodingError as error:
            raise DecodeError(f"Unreadable completion response: {error}") from error
        except httpx.TimeoutException as error:
            raise TransportError(f"Completion request timed out: {error}") from error
        except httpx.RequestError as error:
            raise TransportError(f"Completion request failed: {error}") from error

        if response.status_code != httpx.codes.OK:
            raise HTTPStatusError(
                response.status_code,
                f"Completion endpoint returned HTTP {response.status_code}",
            )

        try:
            body = response.text
        except UnicodeDecodeError as error:
            raise DecodeError(f"Unreadable completion response: {error}") from error
        if not body.strip():
            raise DecodeError("Completion response body is empty")
        try:
            json.loads(body)
        except json.JSONDecodeError as error:
            raise DecodeError(f"Completion response is not JSON: {error}") from error
        return body

    def close(self) -> None:
        self._client.close()

"""Completion client interface and failure taxonomy."""

from __future__ import annotations

from typing import Protocol


class CompletionError(Exception):
    """Base class for failed completion calls."""


class TransportError(CompletionError):
    """Network or connection failure, including client-side timeouts."""


class HTTPStatusError(CompletionError):
    """Completion endpoint answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(CompletionError):
    """Response body could not be read as a completion payload."""


class CompletionClient(Protocol):
    """Protocol implemented by completion backends."""

    def complete(self, prompt: str) -> str:
        """Answer one prompt and return the raw response payload."""

    def close(self) -> None:
        """Release network resources."""

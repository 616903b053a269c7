"""Completion service clients."""

from prompt_relay.completion.base import (
    CompletionClient,
    CompletionError,
    DecodeError,
    HTTPStatusError,
    TransportError,
)
from prompt_relay.completion.echo_client import EchoCompletionClient
from prompt_relay.completion.openai_client import ChatCompletionClient

__all__ = [
    "ChatCompletionClient",
    "CompletionClient",
    "CompletionError",
    "DecodeError",
    "EchoCompletionClient",
    "HTTPStatusError",
    "TransportError",
]

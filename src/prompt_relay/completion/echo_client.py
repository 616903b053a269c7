"""Offline completion backend that answers with the prompt itself."""

from __future__ import annotations

import json

ECHO_MODEL = "echo"


class EchoCompletionClient:
    """Return a chat-completion-shaped document echoing the prompt."""

    def complete(self, prompt: str) -> str:
        return json.dumps(
            {
                "object": "chat.completion",
                "model": ECHO_MODEL,
                "choices": [
                    {
                        "index": 0,
                        "message": {"role": "assistant", "content": prompt},
                        "finish_reason": "stop",
                    },
                ],
            },
            ensure_ascii=False,
        )

    def close(self) -> None:
        return None

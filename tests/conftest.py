"""Shared test fixtures."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from prompt_relay.completion.base import CompletionError, HTTPStatusError
from prompt_relay.engine.repository import TaskRepository


class RecordingClient:
    """Answers every prompt with a small JSON document and remembers the prompts."""

    def __init__(self) -> None:
        self.prompts: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def complete(self, prompt: str) -> str:
        with self._lock:
            self.prompts.append(prompt)
        return json.dumps({"choices": [{"message": {"content": f"answer: {prompt}"}}]})

    def close(self) -> None:
        self.closed = True


class FailingClient:
    """Fails every call with the given completion error."""

    def __init__(self, error: CompletionError | None = None) -> None:
        self.error = error or HTTPStatusError(500, "Completion endpoint returned HTTP 500")
        self.calls = 0

    def complete(self, prompt: str) -> str:
        self.calls += 1
        raise self.error

    def close(self) -> None:
        return None


class GatedClient(RecordingClient):
    """Blocks each call until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()
        self.entered = threading.Semaphore(0)

    def complete(self, prompt: str) -> str:
        self.entered.release()
        self.release.wait(timeout=10)
        return super().complete(prompt)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("PROMPT_RELAY_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[TaskRepository]:
    repository = TaskRepository(tmp_path / "tasks.db")
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@pytest.fixture()
def recording_client() -> RecordingClient:
    return RecordingClient()


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` elapses."""

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture()
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)

"""Process-wide engine context: store, queue, pool, client and admission."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from prompt_relay.completion import ChatCompletionClient, CompletionClient, EchoCompletionClient
from prompt_relay.config import CompletionSettings, Settings
from prompt_relay.engine.admission import AdmissionController
from prompt_relay.engine.recovery import RecoverySummary, recover_unprocessed_tasks
from prompt_relay.engine.repository import TaskRepository
from prompt_relay.engine.task_queue import TaskQueue
from prompt_relay.engine.worker import WorkerPool

logger = logging.getLogger(__name__)


class RelayRuntime:
    """Owns every shared engine component for one server process.

    Built once at startup and handed to the HTTP layer; components receive
    their collaborators explicitly instead of reaching for globals.
    """

    def __init__(
        self,
        *,
        repository: TaskRepository,
        client: CompletionClient,
        pool_size: int,
        queue_capacity: int,
        poll_interval_seconds: float = 0.5,
    ) -> None:
        self.repository = repository
        self.client = client
        self.task_queue = TaskQueue(queue_capacity)
        self.pool = WorkerPool(
            task_queue=self.task_queue,
            repository=repository,
            client=client,
            size=pool_size,
            poll_interval_seconds=poll_interval_seconds,
        )
        self.admission = AdmissionController(repository=repository, task_queue=self.task_queue)
        self._started = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: CompletionClient | None = None,
    ) -> RelayRuntime:
        """Open the store (migrating it) and wire components from settings."""

        repository = TaskRepository(
            settings.db_path,
            sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
        )
        repository.init_schema()
        return cls(
            repository=repository,
            client=client or build_completion_client(settings.completion),
            pool_size=settings.workers.pool_size,
            queue_capacity=settings.workers.effective_queue_capacity,
            poll_interval_seconds=settings.workers.poll_interval_seconds,
        )

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> RecoverySummary:
        """Start workers, then re-enqueue unprocessed tasks.

        Workers start first so a backlog larger than the queue drains while
        recovery is still enqueueing.
        """

        if self._started:
            return RecoverySummary(recovered=0)
        self.pool.start()
        self._started = True
        # with no workers, enqueue only what fits
        limit = None
        if self.pool.size == 0:
            limit = self.task_queue.capacity - self.task_queue.depth
        return recover_unprocessed_tasks(
            repository=self.repository,
            task_queue=self.task_queue,
            limit=limit,
        )

    def close(self) -> None:
        """Stop workers and release the client and store."""

        self.pool.stop()
        self._started = False
        self.client.close()
        self.repository.close()


def build_completion_client(settings: CompletionSettings) -> CompletionClient:
    """Create the completion backend selected in settings."""

    if settings.backend == "echo":
        logger.info("Using offline echo completion backend")
        return EchoCompletionClient()
    if settings.backend == "openai":
        return ChatCompletionClient(
            api_key=settings.api_key,
            url=settings.url,
            model=settings.model,
            temperature=settings.temperature,
            timeout_seconds=settings.timeout_seconds,
        )
    raise ValueError(f"Unsupported completion backend: {settings.backend!r}")


@contextmanager
def open_runtime(
    settings: Settings,
    *,
    client: CompletionClient | None = None,
) -> Iterator[RelayRuntime]:
    """Build a runtime, start it and close it on exit."""

    runtime = RelayRuntime.from_settings(settings, client=client)
    try:
        runtime.start()
        yield runtime
    finally:
        runtime.close()

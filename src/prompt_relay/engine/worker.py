"""Fixed-size worker pool that executes queued prompt tickets."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, fields

from prompt_relay.completion.base import CompletionClient, CompletionError
from prompt_relay.engine.models import TaskTicket
from prompt_relay.engine.repository import StoreError, TaskRepository
from prompt_relay.engine.task_queue import TaskQueue

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkerRunSummary:
    """Aggregate worker counters for reporting and tests."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    store_errors: int = 0
    superseded: int = 0
    idle_polls: int = 0

    def add(self, other: WorkerRunSummary) -> None:
        for item in fields(self):
            setattr(self, item.name, getattr(self, item.name) + getattr(other, item.name))


class TaskWorker:
    """Consumes tickets from the queue and executes them via the completion client.

    Delivery is best-effort at-most-once: a ticket whose completion call fails,
    or whose result cannot be written, is dropped. The task row stays
    unprocessed until the next start re-enqueues it.
    """

    def __init__(
        self,
        *,
        task_queue: TaskQueue,
        repository: TaskRepository,
        client: CompletionClient,
        worker_id: str,
    ) -> None:
        self.task_queue = task_queue
        self.repository = repository
        self.client = client
        self.worker_id = worker_id

    def run_once(self, timeout: float | None = None) -> WorkerRunSummary:
        """Process at most one ticket, waiting up to ``timeout`` for it."""

        summary = WorkerRunSummary()
        try:
            ticket = self.task_queue.dequeue(timeout=timeout)
        except queue.Empty:
            summary.idle_polls = 1
            return summary

        summary.processed = 1
        self.execute(ticket, summary)
        return summary

    def execute(self, ticket: TaskTicket, summary: WorkerRunSummary) -> None:
        try:
            current = self.repository.get(ticket.id)
        except StoreError:
            summary.store_errors = 1
            logger.exception(
                "Worker %s could not load task id=%s item_id=%s",
                self.worker_id,
                ticket.id,
                ticket.item_id,
            )
            return
        if current is None or current.processed:
            summary.superseded = 1
            logger.info(
                "Worker %s skipped task id=%s item_id=%s: superseded or already completed",
                self.worker_id,
                ticket.id,
                ticket.item_id,
            )
            return

        try:
            response = self.client.complete(ticket.prompt)
        except CompletionError as error:
            summary.failed = 1
            logger.warning(
                "Worker %s dropped task id=%s item_id=%s: %s: %s",
                self.worker_id,
                ticket.id,
                ticket.item_id,
                type(error).__name__,
                error,
            )
            return

        try:
            completed = self.repository.mark_completed(task_id=ticket.id, response=response)
        except StoreError:
            summary.store_errors = 1
            logger.exception(
                "Worker %s could not store response for task id=%s item_id=%s",
                self.worker_id,
                ticket.id,
                ticket.item_id,
            )
            return

        if not completed:
            summary.superseded = 1
            logger.info(
                "Worker %s discarded response for task id=%s item_id=%s: "
                "task was superseded or already completed",
                self.worker_id,
                ticket.id,
                ticket.item_id,
            )
            return

        summary.succeeded = 1
        logger.debug("Worker %s completed task id=%s", self.worker_id, ticket.id)


class WorkerPool:
    """Runs ``size`` identical workers, each in its own daemon thread."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        task_queue: TaskQueue,
        repository: TaskRepository,
        client: CompletionClient,
        size: int,
        poll_interval_seconds: float = 0.5,
        name: str = "relay-worker",
    ) -> None:
        if size < 0:
            raise ValueError(f"Worker pool size must be >= 0, got {size}")
        self.task_queue = task_queue
        self.repository = repository
        self.client = client
        self.size = size
        self.poll_interval_seconds = poll_interval_seconds
        self.name = name
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self._summary = WorkerRunSummary()
        self._summary_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Start all worker threads. Calling it on a running pool is a no-op."""

        if self._threads:
            return
        self._stop.clear()
        for index in range(self.size):
            worker = TaskWorker(
                task_queue=self.task_queue,
                repository=self.repository,
                client=self.client,
                worker_id=f"{self.name}-{index}",
            )
            thread = threading.Thread(
                target=self._worker_loop,
                args=(worker,),
                daemon=True,
                name=worker.worker_id,
            )
            self._threads.append(thread)
            thread.start()
        logger.info("Worker pool started with %d workers", self.size)

    def stop(self, timeout: float | None = 15.0) -> None:
        """Ask workers to exit after their current ticket; queued tickets stay put."""

        if not self._threads:
            return
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        alive = [thread.name for thread in self._threads if thread.is_alive()]
        if alive:
            logger.warning("Workers still busy after stop: %s", ", ".join(alive))
        self._threads = []
        logger.info("Worker pool stopped")

    def summary(self) -> WorkerRunSummary:
        """Snapshot of counters accumulated by all workers."""

        with self._summary_lock:
            snapshot = WorkerRunSummary()
            snapshot.add(self._summary)
            return snapshot

    def _worker_loop(self, worker: TaskWorker) -> None:
        while not self._stop.is_set():
            try:
                summary = worker.run_once(timeout=self.poll_interval_seconds)
            except Exception:  # noqa: BLE001
                logger.exception("Worker %s failed while executing a ticket", worker.worker_id)
                continue
            if summary.processed:
                with self._summary_lock:
                    self._summary.add(summary)

"""Startup re-enqueue of tasks left unprocessed by a previous run."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prompt_relay.engine.repository import TaskRepository
from prompt_relay.engine.task_queue import TaskQueue

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RecoverySummary:
    recovered: int
    deferred: int = 0


def recover_unprocessed_tasks(
    *,
    repository: TaskRepository,
    task_queue: TaskQueue,
    limit: int | None = None,
) -> RecoverySummary:
    """Enqueue unprocessed tasks in store order.

    Workers must already be consuming: with more pending tasks than queue
    capacity this call blocks until they make room. ``limit`` caps how many
    tickets are enqueued; the rest stay unprocessed in the store.
    """

    pending = repository.list_unprocessed()
    batch = pending if limit is None else pending[: max(0, limit)]
    for task in batch:
        task_queue.enqueue(task.to_ticket())
    deferred = len(pending) - len(batch)
    if batch:
        logger.info("Recovered %d unprocessed tasks from the store", len(batch))
    if deferred:
        logger.warning(
            "Left %d unprocessed tasks in the store: no room in the queue to recover them",
            deferred,
        )
    return RecoverySummary(recovered=len(batch), deferred=deferred)

"""Task admission: validation, per-item dedup and enqueue."""

from __future__ import annotations

import logging

from prompt_relay.engine.models import AdmittedTask, TaskTicket
from prompt_relay.engine.repository import TaskRepository
from prompt_relay.engine.task_queue import TaskQueue

logger = logging.getLogger(__name__)

# SQLite INTEGER range
ITEM_ID_MIN = -(2**63)
ITEM_ID_MAX = 2**63 - 1


class InvalidTaskError(ValueError):
    """Task request has a missing or malformed field."""


class DuplicateAnsweredError(Exception):
    """The item already has an answered task."""

    def __init__(self, item_id: int, task_id: int) -> None:
        super().__init__(f"Item {item_id} already has a response (task id={task_id})")
        self.item_id = item_id
        self.task_id = task_id


class AdmissionController:
    """Admits tasks into the store and hands their tickets to the queue.

    At most one outstanding task exists per item: an unanswered predecessor is
    deleted and replaced, an answered one rejects the new request. The lookup,
    delete and insert run as separate store calls; a concurrent admission that
    loses the race on insert gets ``TaskConflictError`` from the store.
    """

    def __init__(self, *, repository: TaskRepository, task_queue: TaskQueue) -> None:
        self.repository = repository
        self.task_queue = task_queue

    def admit(self, item_id: int, prompt: str) -> AdmittedTask:
        """Persist a new task and enqueue it. Does not wait for execution."""

        _validate(item_id=item_id, prompt=prompt)

        existing = self.repository.find_by_item_id(item_id)
        if existing is not None:
            if existing.answered:
                logger.info("Rejected item_id=%s: answered by task %s", item_id, existing.id)
                raise DuplicateAnsweredError(item_id, existing.id)
            self.repository.delete(existing.id)
            logger.info("Superseded unanswered task %s for item_id=%s", existing.id, item_id)

        task = self.repository.create(item_id=item_id, prompt=prompt)
        self.task_queue.enqueue(TaskTicket(id=task.id, item_id=task.item_id, prompt=task.prompt))
        logger.info("Admitted task %s for item_id=%s", task.id, item_id)
        return AdmittedTask(id=task.id, item_id=task.item_id)


def _validate(*, item_id: object, prompt: object) -> None:
    if isinstance(item_id, bool) or not isinstance(item_id, int):
        raise InvalidTaskError(f"item_id must be an integer, got {item_id!r}")
    if not ITEM_ID_MIN <= item_id <= ITEM_ID_MAX:
        raise InvalidTaskError(f"item_id is out of range: {item_id}")
    if not isinstance(prompt, str):
        raise InvalidTaskError("prompt must be a string")
    if not prompt.strip():
        raise InvalidTaskError("prompt must not be empty")

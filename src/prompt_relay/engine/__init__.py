"""Task admission, durable queue and bounded worker-pool execution.

Tasks are admitted over HTTP, written to SQLite and handed to a fixed pool of
worker threads through a bounded in-memory queue. The store, not the queue, is
the source of truth: anything not marked processed when the process stops is
re-enqueued on the next start.
"""

from prompt_relay.engine.admission import (
    AdmissionController,
    DuplicateAnsweredError,
    InvalidTaskError,
)
from prompt_relay.engine.models import AdmittedTask, TaskCounts, TaskTicket, TaskView
from prompt_relay.engine.repository import StoreError, TaskConflictError, TaskRepository

__all__ = [
    "AdmissionController",
    "AdmittedTask",
    "DuplicateAnsweredError",
    "InvalidTaskError",
    "StoreError",
    "TaskConflictError",
    "TaskCounts",
    "TaskRepository",
    "TaskTicket",
    "TaskView",
]

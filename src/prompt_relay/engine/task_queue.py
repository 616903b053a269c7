"""Bounded in-memory hand-off channel between admission and workers."""

from __future__ import annotations

import queue

from prompt_relay.engine.models import TaskTicket


class TaskQueue:
    """FIFO queue of task tickets with a fixed capacity.

    ``enqueue`` blocks while the queue is full; this is the only backpressure
    applied to admission. Tickets still queued at shutdown are simply lost from
    memory and recovered from the store on the next start.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Queue capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._queue: queue.Queue[TaskTicket] = queue.Queue(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def depth(self) -> int:
        """Approximate number of queued tickets."""

        return self._queue.qsize()

    def enqueue(self, ticket: TaskTicket) -> None:
        """Append a ticket, blocking until there is room."""

        self._queue.put(ticket)

    def dequeue(self, timeout: float | None = None) -> TaskTicket:
        """Take the oldest ticket.

        Blocks until one is available. When ``timeout`` is given and elapses
        first, ``queue.Empty`` is raised and nothing is consumed.
        """

        return self._queue.get(timeout=timeout)

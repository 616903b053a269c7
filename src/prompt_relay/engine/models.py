"""Domain models for the prompt task engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class TaskTicket:
    """Work ticket carried by the in-memory queue."""

    id: int
    item_id: int
    prompt: str


@dataclass(slots=True, frozen=True)
class AdmittedTask:
    """Identity returned to the caller right after admission."""

    id: int
    item_id: int


@dataclass(slots=True)
class TaskView:
    """Readable task row for admission, workers, HTTP and CLI."""

    id: int
    item_id: int
    prompt: str
    response: str
    processed: bool
    created_at: datetime
    completed_at: datetime | None

    @property
    def answered(self) -> bool:
        return self.response != ""

    def to_ticket(self) -> TaskTicket:
        return TaskTicket(id=self.id, item_id=self.item_id, prompt=self.prompt)


@dataclass(slots=True, frozen=True)
class TaskCounts:
    """Aggregate row counts for health checks and CLI stats."""

    total: int
    processed: int
    unprocessed: int

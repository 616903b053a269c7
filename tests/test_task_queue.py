from __future__ import annotations

import queue
import threading

import allure
import pytest

from prompt_relay.engine.models import TaskTicket
from prompt_relay.engine.task_queue import TaskQueue

pytestmark = [
    allure.epic("Task Engine"),
    allure.feature("Bounded Queue"),
]


def _ticket(task_id: int) -> TaskTicket:
    return TaskTicket(id=task_id, item_id=task_id, prompt=f"prompt {task_id}")


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError, match="capacity"):
        TaskQueue(0)


def test_dequeue_is_fifo() -> None:
    task_queue = TaskQueue(3)
    for task_id in (1, 2, 3):
        task_queue.enqueue(_ticket(task_id))

    assert task_queue.depth == 3
    assert [task_queue.dequeue(timeout=1).id for _ in range(3)] == [1, 2, 3]
    assert task_queue.depth == 0


def test_dequeue_timeout_raises_empty() -> None:
    task_queue = TaskQueue(1)

    with pytest.raises(queue.Empty):
        task_queue.dequeue(timeout=0.01)


def test_enqueue_blocks_when_full_until_a_slot_frees() -> None:
    task_queue = TaskQueue(2)
    task_queue.enqueue(_ticket(1))
    task_queue.enqueue(_ticket(2))

    done = threading.Event()

    def _producer() -> None:
        task_queue.enqueue(_ticket(3))
        done.set()

    thread = threading.Thread(target=_producer, daemon=True)
    thread.start()

    assert not done.wait(timeout=0.2)
    assert task_queue.dequeue(timeout=1).id == 1
    assert done.wait(timeout=2)
    thread.join(timeout=2)
    assert [task_queue.dequeue(timeout=1).id for _ in range(2)] == [2, 3]

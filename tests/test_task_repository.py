from __future__ import annotations

from pathlib import Path

import allure
import pytest

from prompt_relay.engine.repository import StoreError, TaskConflictError, TaskRepository

pytestmark = [
    allure.epic("Task Engine"),
    allure.feature("Durable Task Store"),
]


def test_create_assigns_increasing_ids_and_empty_response(repository: TaskRepository) -> None:
    first = repository.create(item_id=1, prompt="first")
    second = repository.create(item_id=2, prompt="second")

    assert second.id > first.id
    assert first.response == ""
    assert first.processed is False
    assert first.completed_at is None
    assert first.created_at.tzinfo is not None


def test_ids_are_not_reused_after_delete(repository: TaskRepository) -> None:
    first = repository.create(item_id=1, prompt="a")
    assert repository.delete(first.id) is True

    second = repository.create(item_id=1, prompt="b")

    assert second.id > first.id


def test_second_outstanding_task_for_item_is_a_conflict(repository: TaskRepository) -> None:
    repository.create(item_id=7, prompt="a")

    with pytest.raises(TaskConflictError, match="item_id=7"):
        repository.create(item_id=7, prompt="b")


def test_processed_task_does_not_block_a_new_outstanding_row(repository: TaskRepository) -> None:
    done = repository.create(item_id=7, prompt="a")
    assert repository.mark_completed(task_id=done.id, response="{}") is True

    again = repository.create(item_id=7, prompt="b")

    assert again.id > done.id


def test_find_by_item_id_returns_newest_row(repository: TaskRepository) -> None:
    old = repository.create(item_id=3, prompt="old")
    repository.mark_completed(task_id=old.id, response="{}")
    new = repository.create(item_id=3, prompt="new")

    found = repository.find_by_item_id(3)

    assert found is not None
    assert found.id == new.id
    assert repository.find_by_item_id(999) is None


def test_delete_missing_row_is_noop(repository: TaskRepository) -> None:
    assert repository.delete(12345) is False


def test_mark_completed_sets_response_once(repository: TaskRepository) -> None:
    task = repository.create(item_id=5, prompt="p")

    assert repository.mark_completed(task_id=task.id, response='{"a": 1}') is True
    assert repository.mark_completed(task_id=task.id, response='{"b": 2}') is False

    stored = repository.get(task.id)
    assert stored is not None
    assert stored.processed is True
    assert stored.response == '{"a": 1}'
    assert stored.completed_at is not None


def test_mark_completed_on_deleted_row_returns_false(repository: TaskRepository) -> None:
    task = repository.create(item_id=5, prompt="p")
    repository.delete(task.id)

    assert repository.mark_completed(task_id=task.id, response="{}") is False
    assert repository.get(task.id) is None


def test_list_unprocessed_is_oldest_first(repository: TaskRepository) -> None:
    a = repository.create(item_id=1, prompt="a")
    b = repository.create(item_id=2, prompt="b")
    c = repository.create(item_id=3, prompt="c")
    repository.mark_completed(task_id=b.id, response="{}")

    assert [task.id for task in repository.list_unprocessed()] == [a.id, c.id]


def test_list_tasks_filters_and_limits(repository: TaskRepository) -> None:
    ids = [repository.create(item_id=index, prompt=f"p{index}").id for index in range(5)]
    repository.mark_completed(task_id=ids[0], response="{}")

    assert [task.id for task in repository.list_tasks(limit=2)] == [ids[4], ids[3]]
    assert [task.id for task in repository.list_tasks(processed=True)] == [ids[0]]
    assert len(repository.list_tasks(processed=False)) == 4


def test_count_tasks(repository: TaskRepository) -> None:
    first = repository.create(item_id=1, prompt="a")
    repository.create(item_id=2, prompt="b")
    repository.mark_completed(task_id=first.id, response="{}")

    counts = repository.count_tasks()

    assert (counts.total, counts.processed, counts.unprocessed) == (2, 1, 1)


def test_rows_survive_reopening_the_store(tmp_path: Path) -> None:
    db_path = tmp_path / "reopen.db"
    first = TaskRepository(db_path)
    first.init_schema()
    created = first.create(item_id=11, prompt="persist me")
    first.close()

    second = TaskRepository(db_path)
    second.init_schema()
    try:
        found = second.find_by_item_id(11)
    finally:
        second.close()

    assert found is not None
    assert found.id == created.id
    assert found.prompt == "persist me"


def test_unmigrated_store_raises_store_error(tmp_path: Path) -> None:
    repository = TaskRepository(tmp_path / "empty.db")
    try:
        with pytest.raises(StoreError, match="find_by_item_id"):
            repository.find_by_item_id(1)
    finally:
        repository.close()

from __future__ import annotations

from pathlib import Path
from typing import Any

import allure
import pytest
from click.testing import CliRunner

from prompt_relay import controllers
from prompt_relay.engine.repository import TaskRepository
from prompt_relay.main import prompt_relay

pytestmark = [
    allure.epic("Operations"),
    allure.feature("CLI"),
]


def _seed(db_path: Path) -> None:
    repository = TaskRepository(db_path)
    repository.init_schema()
    done = repository.create(item_id=1, prompt="already answered")
    repository.mark_completed(task_id=done.id, response='{"answer": 1}')
    repository.create(item_id=2, prompt="still waiting")
    repository.close()


def test_init_db_creates_schema(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"

    result = CliRunner().invoke(prompt_relay, ["init-db", "--db-path", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "Schema is up to date" in result.output
    assert db_path.exists()


def test_stats_and_tasks_listing(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"
    _seed(db_path)
    runner = CliRunner()

    stats = runner.invoke(prompt_relay, ["stats", "--db-path", str(db_path)])
    pending = runner.invoke(
        prompt_relay,
        ["tasks", "--db-path", str(db_path), "--state", "pending"],
    )
    everything = runner.invoke(prompt_relay, ["tasks", "--db-path", str(db_path)])

    assert stats.exit_code == 0, stats.output
    assert "total=2 processed=1 unprocessed=1" in stats.output
    assert "still waiting" in pending.output
    assert "already answered" not in pending.output
    assert everything.output.index("still waiting") < everything.output.index("already answered")


def test_show_prints_task_and_fails_for_unknown_item(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"
    _seed(db_path)
    runner = CliRunner()

    found = runner.invoke(prompt_relay, ["show", "--db-path", str(db_path), "--item-id", "1"])
    missing = runner.invoke(prompt_relay, ["show", "--db-path", str(db_path), "--item-id", "99"])

    assert found.exit_code == 0, found.output
    assert "Processed: yes" in found.output
    assert '{"answer": 1}' in found.output
    assert missing.exit_code != 0
    assert "No task found for item_id=99" in missing.output


def test_serve_requires_api_key_for_openai_backend(tmp_path: Path) -> None:
    result = CliRunner().invoke(prompt_relay, ["serve", "--db-path", str(tmp_path / "s.db")])

    assert result.exit_code != 0
    assert "API key is required" in result.output


@pytest.mark.usefixtures("restore_root_logger")
def test_serve_applies_overrides_and_runs_uvicorn(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[dict[str, Any]] = []

    def _fake_run(app, **kwargs: Any) -> None:
        calls.append({"app": app, **kwargs})
        app.state.runtime.close()

    monkeypatch.setattr(controllers.uvicorn, "run", _fake_run)
    monkeypatch.setenv("PROMPT_RELAY_COMPLETION_BACKEND", "echo")
    monkeypatch.setenv("PROMPT_RELAY_LOG_FILE", str(tmp_path / "logs" / "error.log"))

    result = CliRunner().invoke(
        prompt_relay,
        [
            "serve",
            "--db-path",
            str(tmp_path / "serve.db"),
            "--host",
            "127.0.0.1",
            "--port",
            "9123",
            "--workers",
            "3",
            "--queue-capacity",
            "7",
        ],
    )

    assert result.exit_code == 0, result.output
    assert len(calls) == 1
    assert calls[0]["host"] == "127.0.0.1"
    assert calls[0]["port"] == 9123
    runtime = calls[0]["app"].state.runtime
    assert runtime.pool.size == 3
    assert runtime.task_queue.capacity == 7
    assert (tmp_path / "logs" / "error.log").exists()


def test_version_option() -> None:
    result = CliRunner().invoke(prompt_relay, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_show_rejects_item_id_outside_store_range(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        prompt_relay,
        ["show", "--db-path", str(tmp_path / "cli.db"), "--item-id", str(2**63)],
    )

    assert result.exit_code == 2
    assert "--item-id" in result.output

"""CLI entrypoint for prompt-relay."""

from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import rich_click as click

from prompt_relay import __version__
from prompt_relay.controllers import (
    InitDbCommand,
    ListTasksCommand,
    RelayCliController,
    ServeCommand,
    ShowTaskCommand,
    StatsCommand,
)
from prompt_relay.engine.admission import ITEM_ID_MAX, ITEM_ID_MIN
from prompt_relay.engine.repository import StoreError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = RelayCliController()

T = TypeVar("T")

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="JSON config file. Defaults to PROMPT_RELAY_CONFIG or ./config.json if present.",
)
db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)


@click.group()
@click.version_option(version=__version__, prog_name="prompt-relay")
def prompt_relay() -> None:
    """Durable prompt task queue."""


@prompt_relay.command("serve")
@config_option
@db_path_option
@click.option("--host", default=None, help="Listen address. Overrides config.")
@click.option(
    "--port",
    type=click.IntRange(min=1, max=65535),
    default=None,
    help="Listen port. Overrides config.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=0),
    default=None,
    help="Number of concurrent completion workers.",
)
@click.option(
    "--queue-capacity",
    type=click.IntRange(min=1),
    default=None,
    help="In-memory queue capacity. Defaults to the worker count.",
)
def serve(  # noqa: PLR0913
    config_path: Path | None,
    db_path: Path | None,
    host: str | None,
    port: int | None,
    workers: int | None,
    queue_capacity: int | None,
) -> None:
    """Serve `/addTask` and `/getTask`, recovering unprocessed tasks first."""

    _run(
        lambda: CONTROLLER.serve(
            ServeCommand(
                config_path=config_path,
                db_path=db_path,
                host=host,
                port=port,
                workers=workers,
                queue_capacity=queue_capacity,
            ),
        ),
    )


@prompt_relay.command("init-db")
@config_option
@db_path_option
def init_db(config_path: Path | None, db_path: Path | None) -> None:
    """Create or migrate the task database."""

    _emit_lines(_run(lambda: CONTROLLER.init_db(InitDbCommand(config_path, db_path))))


@prompt_relay.command("tasks")
@config_option
@db_path_option
@click.option(
    "--state",
    type=click.Choice(["all", "pending", "done"], case_sensitive=False),
    default="all",
    show_default=True,
    help="Filter by processed state.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Max tasks to print.",
)
def tasks(config_path: Path | None, db_path: Path | None, state: str, limit: int) -> None:
    """List tasks, newest first."""

    processed = {"all": None, "pending": False, "done": True}[state.lower()]
    _emit_lines(
        _run(
            lambda: CONTROLLER.list_tasks(
                ListTasksCommand(
                    config_path=config_path,
                    db_path=db_path,
                    processed=processed,
                    limit=limit,
                ),
            ),
        ),
    )


@prompt_relay.command("show")
@config_option
@db_path_option
@click.option(
    "--item-id",
    type=click.IntRange(min=ITEM_ID_MIN, max=ITEM_ID_MAX),
    required=True,
    help="Caller item id.",
)
def show(config_path: Path | None, db_path: Path | None, item_id: int) -> None:
    """Show the task stored for one item."""

    _emit_lines(
        _run(
            lambda: CONTROLLER.show_task(
                ShowTaskCommand(config_path=config_path, db_path=db_path, item_id=item_id),
            ),
        ),
    )


@prompt_relay.command("stats")
@config_option
@db_path_option
def stats(config_path: Path | None, db_path: Path | None) -> None:
    """Show processed/unprocessed task counts."""

    _emit_lines(_run(lambda: CONTROLLER.stats(StatsCommand(config_path, db_path))))


def _run(action: Callable[[], T]) -> T:
    try:
        return action()
    except (ValueError, StoreError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    prompt_relay()

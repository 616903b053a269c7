"""Apply the task-store schema with Alembic."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

# alembic.ini and alembic/ live at the project root, next to src/
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class MigrationsNotFoundError(RuntimeError):
    """Alembic config or scripts are not available next to the package."""


def upgrade_head(db_path: Path, *, project_root: Path = PROJECT_ROOT) -> None:
    """Migrate the task database at ``db_path`` to the newest revision.

    Requires a source checkout (or editable install) where ``alembic.ini`` and
    the ``alembic/`` scripts sit in ``project_root``.
    """

    alembic_ini = project_root / "alembic.ini"
    alembic_dir = project_root / "alembic"
    if not alembic_ini.is_file() or not alembic_dir.is_dir():
        raise MigrationsNotFoundError(
            f"Task store migrations not found under {project_root}: expected "
            "alembic.ini and alembic/. Install prompt-relay from a source checkout "
            "(pip install -e .).",
        )

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(alembic_dir))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    command.upgrade(config, "head")

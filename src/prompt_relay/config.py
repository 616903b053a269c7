"""Runtime configuration for the relay server and worker pool."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from prompt_relay.completion.openai_client import (
    DEFAULT_COMPLETION_URL,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
)

DEFAULT_CONFIG_PATH = Path("config.json")
SUPPORTED_BACKENDS = ("openai", "echo")


@dataclass(slots=True)
class CompletionSettings:
    """Outbound completion service settings."""

    backend: str = "openai"
    api_key: str = ""
    url: str = DEFAULT_COMPLETION_URL
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(slots=True)
class WorkerSettings:
    """Worker pool and queue sizing."""

    pool_size: int = 10
    queue_capacity: int | None = None
    poll_interval_seconds: float = 0.5

    @property
    def effective_queue_capacity(self) -> int:
        if self.queue_capacity is not None:
            return self.queue_capacity
        return max(1, self.pool_size)


@dataclass(slots=True)
class ServerSettings:
    """HTTP listener settings."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080


@dataclass(slots=True)
class LoggingSettings:
    """Log file redirection."""

    log_file: Path | None = Path("error.log")
    level: str = "INFO"
    max_bytes: int = 5_242_880
    backup_count: int = 5


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path("tasks.db")
    sqlite_busy_timeout_ms: int = 5_000
    completion: CompletionSettings = field(default_factory=CompletionSettings)
    workers: WorkerSettings = field(default_factory=WorkerSettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_env(
        cls,
        db_path: Path | None = None,
        config_path: Path | None = None,
    ) -> Settings:
        """Load settings from config file and environment.

        Environment variables win over the JSON config file, which wins over
        defaults. The default ``config.json`` is optional; an explicitly given
        file must exist.
        """

        explicit_path = config_path or _env_path("PROMPT_RELAY_CONFIG")
        file_values = _load_config_file(
            explicit_path or DEFAULT_CONFIG_PATH,
            required=explicit_path is not None,
        )

        def value(env_name: str, key: str, default: Any) -> Any:
            raw = os.getenv(env_name)
            if raw is not None:
                return raw
            return file_values.get(key, default)

        log_file_raw = str(value("PROMPT_RELAY_LOG_FILE", "log_file", "error.log") or "").strip()
        queue_capacity_raw = value("PROMPT_RELAY_QUEUE_CAPACITY", "queue_capacity", None)
        return cls(
            db_path=db_path or Path(value("PROMPT_RELAY_DB_PATH", "db_path", "tasks.db")),
            sqlite_busy_timeout_ms=_as_int(
                "PROMPT_RELAY_SQLITE_BUSY_TIMEOUT_MS",
                value("PROMPT_RELAY_SQLITE_BUSY_TIMEOUT_MS", "sqlite_busy_timeout_ms", 5_000),
            ),
            completion=CompletionSettings(
                backend=str(value("PROMPT_RELAY_COMPLETION_BACKEND", "backend", "openai"))
                .strip()
                .lower(),
                api_key=str(value("PROMPT_RELAY_API_KEY", "api_key", "")).strip(),
                url=str(
                    value("PROMPT_RELAY_COMPLETION_URL", "completion_url", DEFAULT_COMPLETION_URL),
                ),
                model=str(value("PROMPT_RELAY_MODEL", "model", DEFAULT_MODEL)),
                temperature=_as_float(
                    "PROMPT_RELAY_TEMPERATURE",
                    value("PROMPT_RELAY_TEMPERATURE", "temperature", DEFAULT_TEMPERATURE),
                ),
                timeout_seconds=_as_float(
                    "PROMPT_RELAY_TIMEOUT_SECONDS",
                    value(
                        "PROMPT_RELAY_TIMEOUT_SECONDS",
                        "timeout_seconds",
                        DEFAULT_TIMEOUT_SECONDS,
                    ),
                ),
            ),
            workers=WorkerSettings(
                pool_size=_as_int(
                    "PROMPT_RELAY_WORKERS",
                    value("PROMPT_RELAY_WORKERS", "workers", 10),
                ),
                queue_capacity=(
                    _as_int("PROMPT_RELAY_QUEUE_CAPACITY", queue_capacity_raw)
                    if queue_capacity_raw not in (None, "")
                    else None
                ),
                poll_interval_seconds=_as_float(
                    "PROMPT_RELAY_POLL_INTERVAL_SECONDS",
                    value("PROMPT_RELAY_POLL_INTERVAL_SECONDS", "poll_interval_seconds", 0.5),
                ),
            ),
            server=ServerSettings(
                host=str(value("PROMPT_RELAY_HOST", "host", "0.0.0.0")),  # noqa: S104
                port=_as_int("PROMPT_RELAY_PORT", value("PROMPT_RELAY_PORT", "port", 8080)),
            ),
            logging=LoggingSettings(
                log_file=Path(log_file_raw) if log_file_raw else None,
                level=str(value("PROMPT_RELAY_LOG_LEVEL", "log_level", "INFO")).upper(),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for settings the server cannot run with."""

        if self.workers.pool_size < 0:
            raise ValueError("PROMPT_RELAY_WORKERS must be >= 0.")
        if self.workers.effective_queue_capacity < 1:
            raise ValueError("PROMPT_RELAY_QUEUE_CAPACITY must be >= 1.")
        if self.workers.poll_interval_seconds <= 0:
            raise ValueError("PROMPT_RELAY_POLL_INTERVAL_SECONDS must be > 0.")
        if not 1 <= self.server.port <= 65535:  # noqa: PLR2004
            raise ValueError(f"Invalid port: {self.server.port!r}. Expected 1-65535.")
        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("PROMPT_RELAY_SQLITE_BUSY_TIMEOUT_MS must be > 0.")

        completion = self.completion
        if completion.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported completion backend: {completion.backend!r}. "
                f"Expected one of: {', '.join(SUPPORTED_BACKENDS)}.",
            )
        if completion.timeout_seconds <= 0:
            raise ValueError("PROMPT_RELAY_TIMEOUT_SECONDS must be > 0.")
        if not 0 <= completion.temperature <= 2:  # noqa: PLR2004
            raise ValueError("PROMPT_RELAY_TEMPERATURE must be between 0 and 2.")
        if completion.backend == "openai":
            if not completion.api_key:
                raise ValueError(
                    "An API key is required for the openai backend. "
                    "Set PROMPT_RELAY_API_KEY or api_key in config.json.",
                )
            parsed = urlparse(completion.url)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValueError(
                    f"Invalid completion URL: {completion.url!r}. "
                    "Expected an absolute URL with http:// or https:// scheme.",
                )


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ValueError(f"Config file not found: {path}")
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise ValueError(f"Invalid JSON in config file {path}: {error}") from error
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object.")
    return data


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else None


def _as_int(name: str, raw: Any) -> int:
    try:
        return int(str(raw).strip().replace("_", ""))
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error


def _as_float(name: str, raw: Any) -> float:
    try:
        return float(str(raw).strip())
    except ValueError as error:
        raise ValueError(f"Invalid number for {name}: {raw!r}") from error

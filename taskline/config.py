"""Configuration loading for the task service."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from taskline.constants import SUPPORTED_FORMATS, TASKS_FORMAT_TYPE
from taskline.records import TaskSettings
from taskline.statuses import InvalidCustomStatus, StatusRegistry, build_status_registry

LIBRARY_PATH_KEY = "TASKLINE_LIBRARY_PATH"
ENABLED_FORMATS_KEY = "TASKLINE_ENABLED_FORMATS"
GLOBAL_FILTER_KEY = "TASKLINE_GLOBAL_FILTER"
CUSTOM_STATUSES_KEY = "TASKLINE_CUSTOM_STATUSES"
SERVICE_TOKEN_KEY = "TASKLINE_SERVICE_TOKEN"
LOG_LEVEL_KEY = "TASKLINE_LOG_LEVEL"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    library_path: Path
    service_token: str | None
    enabled_formats: tuple[str, ...]
    global_filter: str
    statuses: StatusRegistry
    log_level: int = logging.WARNING

    def task_settings(self) -> TaskSettings:
        return TaskSettings(
            enabled_formats=self.enabled_formats,
            global_filter=self.global_filter,
            statuses=self.statuses,
        )


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        name, sep, value = stripped.partition("=")
        if not sep or name.strip() != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_setting(dotenv_path: Path, key: str) -> str | None:
    value = os.environ.get(key)
    if value is None:
        value = _read_dotenv_value(dotenv_path, key)
    return value


def _read_formats(raw_value: str | None) -> tuple[str, ...]:
    if raw_value is None or not raw_value.strip():
        return (TASKS_FORMAT_TYPE,)
    formats: list[str] = []
    for item in raw_value.split(","):
        name = item.strip().lower()
        if not name:
            continue
        if name not in SUPPORTED_FORMATS:
            raise ConfigError(
                f"{ENABLED_FORMATS_KEY} entries must be one of: "
                f"{', '.join(SUPPORTED_FORMATS)}."
            )
        if name not in formats:
            formats.append(name)
    if not formats:
        raise ConfigError(f"{ENABLED_FORMATS_KEY} must name at least one format.")
    return tuple(formats)


def _read_statuses(raw_value: str | None) -> StatusRegistry:
    if raw_value is None or not raw_value.strip():
        return build_status_registry()
    try:
        entries = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{CUSTOM_STATUSES_KEY} must be a JSON array.") from exc
    if not isinstance(entries, list):
        raise ConfigError(f"{CUSTOM_STATUSES_KEY} must be a JSON array.")
    try:
        return build_status_registry(entries)
    except InvalidCustomStatus as exc:
        raise ConfigError(f"{CUSTOM_STATUSES_KEY} is invalid: {exc}") from exc


def _read_log_level(raw_value: str | None) -> int:
    if raw_value is None or not raw_value.strip():
        return logging.WARNING
    level = logging.getLevelName(raw_value.strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"{LOG_LEVEL_KEY} must be a logging level name.")
    return level


def load_config() -> AppConfig:
    """Load configuration from the environment, falling back to ./.env."""
    dotenv_path = Path.cwd() / ".env"

    raw_path = (_read_setting(dotenv_path, LIBRARY_PATH_KEY) or "").strip()
    if not raw_path:
        raise ConfigError(
            f"{LIBRARY_PATH_KEY} is required; set it to the library root path."
        )

    service_token = _read_setting(dotenv_path, SERVICE_TOKEN_KEY)
    service_token = service_token.strip() if isinstance(service_token, str) else None

    return AppConfig(
        library_path=Path(raw_path).resolve(),
        service_token=service_token or None,
        enabled_formats=_read_formats(_read_setting(dotenv_path, ENABLED_FORMATS_KEY)),
        global_filter=(_read_setting(dotenv_path, GLOBAL_FILTER_KEY) or "").strip(),
        statuses=_read_statuses(_read_setting(dotenv_path, CUSTOM_STATUSES_KEY)),
        log_level=_read_log_level(_read_setting(dotenv_path, LOG_LEVEL_KEY)),
    )

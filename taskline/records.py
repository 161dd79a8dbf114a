"""Task records, parser settings and sparse update sets."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Union

from taskline.constants import (
    DATE_FIELDS,
    DEFAULT_PRIORITY,
    PRIORITY_LEVELS,
    SUPPORTED_FORMATS,
    TAG_NAME,
    TASKS_FORMAT_TYPE,
)
from taskline.errors import McpError
from taskline.formats import format_iso_date, parse_iso_date
from taskline.statuses import DEFAULT_REGISTRY, StatusRegistry


class FieldUpdate(enum.Enum):
    """Markers for update fields that carry no explicit value."""

    KEEP = "keep"
    CLEAR = "clear"


KEEP = FieldUpdate.KEEP
CLEAR = FieldUpdate.CLEAR

DateUpdate = Union[date, FieldUpdate]

_CAMEL_DATE_KEYS = {
    "createdDate": "created_date",
    "startDate": "start_date",
    "scheduledDate": "scheduled_date",
    "dueDate": "due_date",
    "cancelledDate": "cancelled_date",
    "completionDate": "completion_date",
}
DATE_FIELD_KEYS = {value: key for key, value in _CAMEL_DATE_KEYS.items()}
TAG_NAME_PATTERN = re.compile(TAG_NAME)


@dataclass(frozen=True)
class TaskSettings:
    """Parser/serializer inputs supplied by the host settings."""

    enabled_formats: tuple[str, ...] = (TASKS_FORMAT_TYPE,)
    global_filter: str = ""
    statuses: StatusRegistry = DEFAULT_REGISTRY

    def __post_init__(self) -> None:
        unknown = [fmt for fmt in self.enabled_formats if fmt not in SUPPORTED_FORMATS]
        if unknown:
            raise ValueError(f"Unsupported task formats: {', '.join(unknown)}")
        object.__setattr__(self, "global_filter", (self.global_filter or "").strip())


@dataclass(frozen=True)
class TaskRecord:
    """One recognized task line; immutable once produced."""

    file_path: str
    file_name: str
    line_number: int
    content: str
    description: str
    completed: bool = False
    cancelled: bool = False
    status: str | None = "todo"
    format: str | None = None
    priority: str = DEFAULT_PRIORITY
    tags: tuple[str, ...] = ()
    created_date: date | None = None
    start_date: date | None = None
    scheduled_date: date | None = None
    due_date: date | None = None
    cancelled_date: date | None = None
    completion_date: date | None = None
    warning: str | None = None

    def __post_init__(self) -> None:
        if self.line_number < 1:
            raise ValueError("line_number must be 1-based.")
        if self.priority not in PRIORITY_LEVELS:
            raise ValueError(f"Unknown priority: {self.priority}")

    @property
    def key(self) -> str:
        return f"{self.file_path}:{self.line_number}"

    def dates(self) -> dict[str, date]:
        return {
            name: getattr(self, name)
            for name in DATE_FIELDS
            if getattr(self, name) is not None
        }

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key,
            "filePath": self.file_path,
            "fileName": self.file_name,
            "lineNumber": self.line_number,
            "content": self.content,
            "description": self.description,
            "completed": self.completed,
            "cancelled": self.cancelled,
            "status": self.status,
            "format": self.format,
            "priority": self.priority,
            "tags": list(self.tags),
            "warning": self.warning,
        }
        for name in DATE_FIELDS:
            value = getattr(self, name)
            payload[DATE_FIELD_KEYS[name]] = (
                format_iso_date(value) if value is not None else None
            )
        return payload


@dataclass(frozen=True)
class UpdateSet:
    """Sparse update applied by the serializer.

    Every field defaults to ``KEEP``. Date fields additionally accept
    ``CLEAR``, which removes the date, as opposed to ``KEEP``, which leaves
    the existing value in place.
    """

    completed: bool | FieldUpdate = KEEP
    cancelled: bool | FieldUpdate = KEEP
    status: str | FieldUpdate = KEEP
    priority: str | FieldUpdate = KEEP
    content: str | FieldUpdate = KEEP
    tags: tuple[str, ...] | FieldUpdate = KEEP
    created_date: DateUpdate = KEEP
    start_date: DateUpdate = KEEP
    scheduled_date: DateUpdate = KEEP
    due_date: DateUpdate = KEEP
    cancelled_date: DateUpdate = KEEP
    completion_date: DateUpdate = KEEP

    def __post_init__(self) -> None:
        for item in fields(self):
            if item.name in DATE_FIELDS:
                continue
            if getattr(self, item.name) is CLEAR:
                raise ValueError(f"{item.name} cannot be cleared.")
        if self.priority is not KEEP and self.priority not in PRIORITY_LEVELS:
            raise ValueError(f"Unknown priority: {self.priority}")
        if self.content is not KEEP and _has_line_break(self.content):
            raise ValueError("content must be a single line.")
        if self.tags is not KEEP:
            for tag in self.tags:
                if not TAG_NAME_PATTERN.fullmatch(tag):
                    raise ValueError(f"Invalid tag name: {tag!r}")

    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is KEEP for item in fields(self))

    @classmethod
    def from_payload(
        cls, payload: dict[str, Any], statuses: StatusRegistry | None = None
    ) -> "UpdateSet":
        """Build an update set from a JSON object.

        A missing key keeps the existing value; ``null`` on a date key clears
        it. Non-date keys reject ``null``.
        """
        allowed = {
            "completed",
            "cancelled",
            "status",
            "priority",
            "content",
            "tags",
            *_CAMEL_DATE_KEYS,
        }
        unknown_fields = sorted(set(payload) - allowed)
        if unknown_fields:
            raise McpError(
                "UNKNOWN_FIELD",
                "Unknown fields are not allowed.",
                {"fields": unknown_fields},
            )

        values: dict[str, Any] = {}
        for key in ("completed", "cancelled"):
            if key in payload:
                if not isinstance(payload[key], bool):
                    raise McpError(
                        "INVALID_TYPE", f"{key} must be a boolean.", {key: str(payload[key])}
                    )
                values[key] = payload[key]

        if "status" in payload:
            status = payload["status"]
            registry = statuses or DEFAULT_REGISTRY
            if not isinstance(status, str) or registry.by_key(status) is None:
                raise McpError(
                    "UNKNOWN_STATUS",
                    "status must be a configured status key.",
                    {"status": str(status)},
                )
            values["status"] = status

        if "priority" in payload:
            priority = payload["priority"]
            if priority not in PRIORITY_LEVELS:
                raise McpError(
                    "INVALID_PRIORITY",
                    "priority must be one of the supported levels.",
                    {"priority": str(priority), "allowed": list(PRIORITY_LEVELS)},
                )
            values["priority"] = priority

        if "content" in payload:
            if not isinstance(payload["content"], str):
                raise McpError(
                    "INVALID_TYPE", "content must be a string.", {"content": str(payload["content"])}
                )
            if _has_line_break(payload["content"]):
                raise McpError(
                    "INVALID_TYPE",
                    "content must be a single line.",
                    {"content": payload["content"]},
                )
            values["content"] = payload["content"].strip()

        if "tags" in payload:
            tags = payload["tags"]
            if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
                raise McpError(
                    "INVALID_TYPE", "tags must be a list of strings.", {"tags": str(tags)}
                )
            if any(_has_line_break(tag) for tag in tags):
                raise McpError(
                    "INVALID_TYPE", "tags must not contain line breaks.", {"tags": tags}
                )
            values["tags"] = _normalize_tags(tags)
            invalid = [tag for tag in values["tags"] if not TAG_NAME_PATTERN.fullmatch(tag)]
            if invalid:
                raise McpError(
                    "INVALID_TAG",
                    "Tags must start with a letter and contain no spaces.",
                    {"tags": invalid},
                )

        for camel_key, name in _CAMEL_DATE_KEYS.items():
            if camel_key not in payload:
                continue
            raw_value = payload[camel_key]
            if raw_value is None:
                values[name] = CLEAR
                continue
            parsed = parse_iso_date(raw_value) if isinstance(raw_value, str) else None
            if parsed is None:
                raise McpError(
                    "INVALID_DATE",
                    f"{camel_key} must be a yyyy-MM-dd date or null.",
                    {camel_key: str(raw_value)},
                )
            values[name] = parsed

        return cls(**values)


def _has_line_break(text: str) -> bool:
    return "\n" in text or "\r" in text


def _normalize_tags(tags: list[str]) -> tuple[str, ...]:
    seen: list[str] = []
    for tag in tags:
        name = tag.strip().lstrip("#")
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


@dataclass
class MergedTask:
    """Record values after an update set has been applied."""

    completed: bool
    cancelled: bool
    status: str | None
    priority: str
    description: str
    tags: tuple[str, ...] = ()
    dates: dict[str, date] = field(default_factory=dict)

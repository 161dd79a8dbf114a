"""Symbol tables and patterns for the two inline task annotation formats.

``tasks`` encodes priority and dates as emoji glyphs::

    - [ ] Ship release ⏫ ➕ 2024-01-10 📅 2024-01-15

``dataview`` encodes every attribute as an inline field::

    - [ ] Ship release [priority:: high] [created:: 2024-01-10] [due:: 2024-01-15]

All patterns are compiled once at import time and the configs are passed
around by reference.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Iterable, Mapping, Pattern

from taskline.constants import (
    DATAVIEW_FORMAT_TYPE,
    DEFAULT_PRIORITY,
    MIXED_FORMAT,
    PRIORITY_LEVELS,
    TASKS_FORMAT_TYPE,
)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_VARIATION_SELECTOR = "\ufe0f?"


def parse_iso_date(value: str) -> date | None:
    """Parse ``yyyy-MM-dd``; return None for anything that is not a real date."""
    value = value.strip()
    if not _ISO_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def format_iso_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class FormatConfig:
    type: str
    name: str
    priority_tokens: Mapping[str, str]
    date_tokens: Mapping[str, str]
    priority_regex: Pattern[str]
    date_regexes: Mapping[str, Pattern[str]]
    detection_regex: Pattern[str]
    removal_regex: Pattern[str]

    def priority_token(self, level: str) -> str:
        return self.priority_tokens.get(level, "")

    def date_token(self, field: str) -> str:
        return self.date_tokens[field]

    def priority_from_match(self, text: str) -> str | None:
        """Map the captured priority text back to a priority level."""
        if self.type == TASKS_FORMAT_TYPE:
            glyph = text.replace("\ufe0f", "")
            for level, token in self.priority_tokens.items():
                if token and token == glyph:
                    return level
            return None
        normalized = text.strip().lower()
        return normalized if normalized in PRIORITY_LEVELS else None

    def render_priority(self, level: str) -> str:
        if level == DEFAULT_PRIORITY or level not in PRIORITY_LEVELS:
            return ""
        if self.type == TASKS_FORMAT_TYPE:
            return self.priority_tokens[level]
        return f"[priority:: {level}]"

    def render_date(self, field: str, value: date) -> str:
        if self.type == TASKS_FORMAT_TYPE:
            return f"{self.date_tokens[field]} {format_iso_date(value)}"
        return f"[{self.date_tokens[field]}:: {format_iso_date(value)}]"


# ==================== tasks (emoji) ====================

_TASKS_PRIORITY_TOKENS = {
    "highest": "🔺",
    "high": "⏫",
    "medium": "🔼",
    "normal": "",
    "low": "🔽",
    "lowest": "⏬",
}

_TASKS_DATE_TOKENS = {
    "created_date": "➕",
    "start_date": "🛫",
    "scheduled_date": "⏳",
    "due_date": "📅",
    "cancelled_date": "❌",
    "completion_date": "✅",
}

_PRIORITY_GLYPHS = "".join(token for token in _TASKS_PRIORITY_TOKENS.values() if token)
_DATE_GLYPHS = "".join(_TASKS_DATE_TOKENS.values())


def _tasks_date_regex(glyph: str) -> Pattern[str]:
    return re.compile(
        re.escape(glyph) + _VARIATION_SELECTOR + r"\s*(\d{4}-\d{2}-\d{2})"
    )


TASKS_FORMAT = FormatConfig(
    type=TASKS_FORMAT_TYPE,
    name="Tasks (Emoji)",
    priority_tokens=MappingProxyType(_TASKS_PRIORITY_TOKENS),
    date_tokens=MappingProxyType(_TASKS_DATE_TOKENS),
    priority_regex=re.compile(f"([{_PRIORITY_GLYPHS}]){_VARIATION_SELECTOR}"),
    date_regexes=MappingProxyType(
        {field: _tasks_date_regex(glyph) for field, glyph in _TASKS_DATE_TOKENS.items()}
    ),
    detection_regex=re.compile(
        f"[{_PRIORITY_GLYPHS}]|[{_DATE_GLYPHS}]{_VARIATION_SELECTOR}"
        r"\s*\d{4}-\d{2}-\d{2}"
    ),
    removal_regex=re.compile(
        f"[{_PRIORITY_GLYPHS}]{_VARIATION_SELECTOR}"
        f"|[{_DATE_GLYPHS}]{_VARIATION_SELECTOR}"
        r"\s*\d{4}-\d{2}-\d{2}"
    ),
)


# ==================== dataview (fields) ====================

_DATAVIEW_DATE_TOKENS = {
    "created_date": "created",
    "start_date": "start",
    "scheduled_date": "scheduled",
    "due_date": "due",
    "cancelled_date": "cancelled",
    "completion_date": "completion",
}

_DATAVIEW_KEYS = "|".join(["priority", *_DATAVIEW_DATE_TOKENS.values()])


def _dataview_field_regex(name: str) -> Pattern[str]:
    return re.compile(
        r"\[\s*" + re.escape(name) + r"\s*::\s*([^\[\]]*?)\s*\]", re.IGNORECASE
    )


DATAVIEW_FORMAT = FormatConfig(
    type=DATAVIEW_FORMAT_TYPE,
    name="Dataview (Fields)",
    priority_tokens=MappingProxyType(
        {level: f"priority:: {level}" for level in PRIORITY_LEVELS}
    ),
    date_tokens=MappingProxyType(_DATAVIEW_DATE_TOKENS),
    priority_regex=_dataview_field_regex("priority"),
    date_regexes=MappingProxyType(
        {
            field: _dataview_field_regex(name)
            for field, name in _DATAVIEW_DATE_TOKENS.items()
        }
    ),
    detection_regex=re.compile(
        r"\[\s*(?:" + _DATAVIEW_KEYS + r")\s*::[^\[\]]*\]", re.IGNORECASE
    ),
    removal_regex=re.compile(
        r"\[\s*(?:" + _DATAVIEW_KEYS + r")\s*::[^\[\]]*\]", re.IGNORECASE
    ),
)

FORMAT_CONFIGS: Mapping[str, FormatConfig] = MappingProxyType(
    {TASKS_FORMAT_TYPE: TASKS_FORMAT, DATAVIEW_FORMAT_TYPE: DATAVIEW_FORMAT}
)


def get_format_config(fmt: str) -> FormatConfig:
    return FORMAT_CONFIGS[fmt]


def detect_format(content: str, enabled_formats: Iterable[str]) -> str | None:
    """Classify ``content`` as ``tasks``, ``dataview``, ``mixed`` or None.

    Only formats listed in ``enabled_formats`` are considered.
    """
    enabled = set(enabled_formats)
    has_tasks = (
        TASKS_FORMAT_TYPE in enabled
        and TASKS_FORMAT.detection_regex.search(content) is not None
    )
    has_dataview = (
        DATAVIEW_FORMAT_TYPE in enabled
        and DATAVIEW_FORMAT.detection_regex.search(content) is not None
    )
    if has_tasks and has_dataview:
        return MIXED_FORMAT
    if has_tasks:
        return TASKS_FORMAT_TYPE
    if has_dataview:
        return DATAVIEW_FORMAT_TYPE
    return None

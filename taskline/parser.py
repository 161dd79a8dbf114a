"""Task line parsing.

A line goes through four steps before it becomes a ``TaskRecord``:

1. recognize the list marker and checkbox (``recognize_task_line``),
2. gate it on the global filter (``passes_filter`` / ``strip_filter``),
3. detect the annotation format (``taskline.formats.detect_format``),
4. extract priority, dates, tags and the display description.

Nothing in this module raises on malformed input: lines that do not qualify
return None and unparseable dates are dropped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from taskline.constants import (
    DEFAULT_PRIORITY,
    MIXED_FORMAT,
    TAG_NAME,
    TASKS_FORMAT_TYPE,
    WARNING_MIXED_FORMAT,
    WARNING_UNSCHEDULED,
)
from taskline.formats import FormatConfig, detect_format, get_format_config, parse_iso_date
from taskline.records import TaskRecord, TaskSettings
from taskline.statuses import StatusRegistry

logger = logging.getLogger(__name__)

TASK_LINE_PATTERN = re.compile(
    r"^(?P<indent>\s*)(?P<marker>[-*+])\s+\[(?P<symbol>[^\]]?)\](?:\s+|$)(?P<content>.*)$"
)
TAG_PATTERN = re.compile(r"(?<![\w#])#(" + TAG_NAME + ")")
_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True)
class TaskLineMatch:
    indent: str
    marker: str
    symbol: str
    content: str


@dataclass
class ParsedAttributes:
    priority: str = DEFAULT_PRIORITY
    dates: dict[str, date] = field(default_factory=dict)
    has_cancelled_date: bool = False


def recognize_task_line(line: str) -> TaskLineMatch | None:
    match = TASK_LINE_PATTERN.match(line.rstrip("\r\n"))
    if not match:
        return None
    return TaskLineMatch(
        indent=match.group("indent"),
        marker=match.group("marker"),
        symbol=match.group("symbol") or " ",
        content=match.group("content").strip(),
    )


def passes_filter(content: str, global_filter: str | None) -> bool:
    global_filter = (global_filter or "").strip()
    if not global_filter:
        return True
    return global_filter in content


def strip_filter(content: str, global_filter: str | None) -> str:
    """Remove the first literal occurrence of the filter and the whitespace after it."""
    global_filter = (global_filter or "").strip()
    if not global_filter:
        return content
    start = content.find(global_filter)
    if start < 0:
        return content
    end = start + len(global_filter)
    while end < len(content) and content[end].isspace():
        end += 1
    return content[:start] + content[end:]


def decode_checkbox(symbol: str, statuses: StatusRegistry) -> tuple[bool, bool, str]:
    """Return ``(completed, cancelled, status_key)`` for a checkbox symbol."""
    # "X" always reads as done, whatever the registry holds.
    descriptor = statuses.by_symbol("x" if symbol in ("x", "X") else symbol)
    status = descriptor.key if descriptor is not None else "todo"
    completed = status == "done"
    cancelled = status == "canceled"
    return completed, cancelled, status


def parse_attributes(content: str, config: FormatConfig) -> ParsedAttributes:
    attributes = ParsedAttributes()

    priority_match = config.priority_regex.search(content)
    if priority_match:
        attributes.priority = (
            config.priority_from_match(priority_match.group(1)) or DEFAULT_PRIORITY
        )

    for name, pattern in config.date_regexes.items():
        match = pattern.search(content)
        if not match:
            continue
        value = parse_iso_date(match.group(1))
        if value is None:
            logger.debug("Dropping invalid %s value %r", name, match.group(1))
            continue
        attributes.dates[name] = value

    attributes.has_cancelled_date = "cancelled_date" in attributes.dates
    return attributes


def extract_tags(content: str) -> list[str]:
    tags: list[str] = []
    for match in TAG_PATTERN.finditer(content):
        name = match.group(1)
        if name not in tags:
            tags.append(name)
    return tags


def extract_description(content: str, enabled_formats: Iterable[str]) -> str:
    text = content
    for fmt in enabled_formats:
        text = get_format_config(fmt).removal_regex.sub(" ", text)
    text = TAG_PATTERN.sub(" ", text)
    return _WHITESPACE_RUN.sub(" ", text).strip()


def parse_task_line(
    line: str,
    settings: TaskSettings,
    *,
    file_path: str = "",
    file_name: str = "",
    line_number: int = 1,
) -> TaskRecord | None:
    """Parse one line into a ``TaskRecord``.

    Returns None when the line is not a task line or is excluded by the
    global filter.
    """
    match = recognize_task_line(line)
    if match is None:
        return None
    if not passes_filter(match.content, settings.global_filter):
        return None

    content = strip_filter(match.content, settings.global_filter).strip()
    completed, cancelled, status = decode_checkbox(match.symbol, settings.statuses)

    detected = detect_format(content, settings.enabled_formats)
    # Mixed lines are read with the emoji rules.
    fmt = TASKS_FORMAT_TYPE if detected == MIXED_FORMAT else detected

    attributes = ParsedAttributes()
    if fmt is not None and fmt in settings.enabled_formats:
        attributes = parse_attributes(content, get_format_config(fmt))
        if attributes.has_cancelled_date and not completed:
            cancelled = True
    else:
        fmt = None

    if detected == MIXED_FORMAT:
        warning: str | None = WARNING_MIXED_FORMAT
    elif attributes.priority == DEFAULT_PRIORITY and not attributes.dates:
        warning = WARNING_UNSCHEDULED
    else:
        warning = None

    return TaskRecord(
        file_path=file_path,
        file_name=file_name,
        line_number=line_number,
        content=content,
        description=extract_description(content, settings.enabled_formats),
        completed=completed,
        cancelled=cancelled,
        status=status,
        format=fmt,
        priority=attributes.priority,
        tags=tuple(extract_tags(content)),
        warning=warning,
        **attributes.dates,
    )

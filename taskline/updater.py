"""In-place rewrite of a single task line.

Every mutation reads the document, re-parses the current text of the target
line, serializes the merged record and replaces that one line. The write
either lands whole (atomic replace, git commit, activity entry) or is rolled
back. Concurrent writers are not detected; the last write wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path, PurePosixPath
from typing import Any

from taskline.activity import _append_activity_log, _build_activity_entry
from taskline.constants import MIXED_FORMAT, TASKS_FORMAT_TYPE
from taskline.errors import (
    GIT_ERROR,
    INVALID_LINE_INDEX,
    LOG_ERROR,
    MALFORMED_LIST_MARKER,
    NOT_A_TASK_LINE,
    McpError,
)
from taskline.formats import detect_format
from taskline.git import (
    _commit_document_change,
    _ensure_git_repo,
    _resolve_git_head,
    _restore_git_head,
    _rollback_document_change,
)
from taskline.parser import parse_task_line
from taskline.records import CLEAR, KEEP, TaskRecord, TaskSettings, UpdateSet
from taskline.serializer import serialize_task
from taskline.store import read_text, resolve_document_path, write_lines

logger = logging.getLogger(__name__)

LIST_MARKER_PATTERN = re.compile(r"^(?P<indent>\s*)(?P<marker>[-*+])\s+\[[^\]]?\]")
HEADING_PREFIX_PATTERN = re.compile(r"^#+\s*")
# A new task placed under a heading stops at the next level 1 or 2 heading.
SECTION_BREAK_PATTERN = re.compile(r"^#{1,2}\s")


@dataclass(frozen=True)
class LineRewrite:
    index: int
    before: str
    after: str
    record: TaskRecord


def determine_format(record: TaskRecord, line: str, enabled_formats: tuple[str, ...]) -> str:
    """Pick the format a rewritten line is rendered in.

    The record's own format wins; otherwise the line is inspected; otherwise the
    first enabled format is used.
    """
    if record.format:
        return record.format
    detected = detect_format(line, enabled_formats)
    if detected == MIXED_FORMAT:
        return TASKS_FORMAT_TYPE
    if detected:
        return detected
    return enabled_formats[0] if enabled_formats else TASKS_FORMAT_TYPE


def _checked_index(lines: list[str], line_number: int, path: str) -> int:
    index = line_number - 1
    if index < 0 or index >= len(lines):
        raise McpError(
            INVALID_LINE_INDEX,
            "Line number is outside the document; re-scan before retrying.",
            {"path": path, "lineNumber": line_number, "lineCount": len(lines)},
        )
    return index


def read_task_at(
    lines: list[str], line_number: int, settings: TaskSettings, path: str
) -> TaskRecord:
    """Parse the task currently on ``line_number`` or fail with a write-path error."""
    index = _checked_index(lines, line_number, path)
    line = lines[index]
    if not LIST_MARKER_PATTERN.match(line):
        raise McpError(
            MALFORMED_LIST_MARKER,
            "Target line is no longer a list item with a checkbox.",
            {"path": path, "lineNumber": line_number, "line": line},
        )
    record = parse_task_line(
        line,
        settings,
        file_path=path,
        file_name=PurePosixPath(path).stem,
        line_number=line_number,
    )
    if record is None:
        raise McpError(
            NOT_A_TASK_LINE,
            "Target line is not a task under the current global filter.",
            {"path": path, "lineNumber": line_number},
        )
    return record


def rewrite_task_line(
    lines: list[str],
    record: TaskRecord,
    updates: UpdateSet,
    settings: TaskSettings,
) -> LineRewrite:
    """Render ``record`` merged with ``updates`` back onto its own line.

    ``lines`` is not modified; the caller replaces ``lines[index]``.
    """
    index = _checked_index(lines, record.line_number, record.file_path)
    before = lines[index]
    match = LIST_MARKER_PATTERN.match(before)
    if not match:
        raise McpError(
            MALFORMED_LIST_MARKER,
            "Target line is no longer a list item with a checkbox.",
            {"path": record.file_path, "lineNumber": record.line_number, "line": before},
        )

    fmt = determine_format(record, before, settings.enabled_formats)
    body = serialize_task(record, updates, fmt, settings.global_filter, settings.statuses)
    after = f"{match.group('indent')}{match.group('marker')} {body}"
    if before.endswith("\r"):
        after += "\r"

    reparsed = parse_task_line(
        after,
        settings,
        file_path=record.file_path,
        file_name=record.file_name,
        line_number=record.line_number,
    )
    return LineRewrite(index=index, before=before, after=after, record=reparsed or record)


def _persist_lines(
    library_root: Path,
    resolved_path: Path,
    original_content: str | None,
    lines: list[str],
    operation: str,
    line_number: int,
    before: str,
    after: str,
) -> str:
    """Write ``lines``, commit them and log the change; undo all of it on failure.

    ``original_content`` is ``None`` when the document is being created.
    """
    relative_path = resolved_path.relative_to(library_root)
    display_path = relative_path.as_posix()
    repo = _ensure_git_repo(library_root)
    previous_head = _resolve_git_head(library_root)
    write_lines(resolved_path, lines)

    try:
        commit_sha = _commit_document_change(repo, relative_path, operation)
    except Exception as exc:
        _rollback_document_change(repo, resolved_path, relative_path, original_content)
        raise McpError(
            GIT_ERROR,
            "Git commit failed; mutation rolled back.",
            {"path": display_path, "operation": operation},
        ) from exc

    try:
        entry = _build_activity_entry(
            operation, relative_path, line_number, before, after, commit_sha
        )
        _append_activity_log(library_root, entry)
    except Exception as exc:
        _rollback_document_change(repo, resolved_path, relative_path, original_content)
        _restore_git_head(repo, previous_head)
        raise McpError(
            LOG_ERROR,
            "Activity log write failed; mutation rolled back.",
            {"path": display_path, "operation": operation},
        ) from exc
    return commit_sha


def apply_task_update(
    library_root: Path,
    raw_path: str,
    line_number: int,
    updates: UpdateSet,
    settings: TaskSettings,
    operation: str = "update_task",
    record: TaskRecord | None = None,
) -> dict[str, Any]:
    """Read, rewrite and persist one task line; return the new task and commit."""
    resolved_path = resolve_document_path(library_root, raw_path)
    display_path = resolved_path.relative_to(library_root).as_posix()

    current_content = read_text(resolved_path, display_path)
    lines = current_content.split("\n")
    current = read_task_at(lines, line_number, settings, display_path)
    if record is None:
        record = current

    rewrite = rewrite_task_line(lines, record, updates, settings)
    if rewrite.after == rewrite.before:
        return {
            "task": rewrite.record.to_dict(),
            "line": rewrite.after,
            "changed": False,
            "commitSha": _resolve_git_head(library_root),
        }

    lines[rewrite.index] = rewrite.after
    commit_sha = _persist_lines(
        library_root,
        resolved_path,
        current_content,
        lines,
        operation,
        line_number,
        rewrite.before,
        rewrite.after,
    )
    logger.info("%s rewrote %s:%d", operation, display_path, line_number)
    return {
        "task": rewrite.record.to_dict(),
        "line": rewrite.after,
        "changed": True,
        "commitSha": commit_sha,
    }


def apply_task_delete(
    library_root: Path, raw_path: str, line_number: int, settings: TaskSettings
) -> dict[str, Any]:
    """Remove one task line from its document.

    The line is spliced out, so every later line moves up by one.
    """
    resolved_path = resolve_document_path(library_root, raw_path)
    display_path = resolved_path.relative_to(library_root).as_posix()

    current_content = read_text(resolved_path, display_path)
    lines = current_content.split("\n")
    record = read_task_at(lines, line_number, settings, display_path)
    removed = lines.pop(line_number - 1)

    commit_sha = _persist_lines(
        library_root,
        resolved_path,
        current_content,
        lines,
        "delete_task",
        line_number,
        removed,
        "",
    )
    logger.info("delete_task removed %s:%d", display_path, line_number)
    return {"task": record.to_dict(), "line": removed, "commitSha": commit_sha}


def _find_heading(lines: list[str], heading: str) -> int | None:
    title = HEADING_PREFIX_PATTERN.sub("", heading).strip()
    pattern = re.compile(r"^#{1,6}\s+" + re.escape(title), re.IGNORECASE)
    for index, line in enumerate(lines):
        if pattern.match(line):
            return index
    return None


def _last_section_line(lines: list[str], heading_index: int) -> int:
    last = heading_index
    for index in range(heading_index + 1, len(lines)):
        line = lines[index]
        if SECTION_BREAK_PATTERN.match(line):
            break
        if line.strip():
            last = index
    return last


def insert_task_line(lines: list[str], task_line: str, heading: str | None = None) -> int:
    """Insert ``task_line`` into ``lines`` in place and return its index.

    Under an existing ``heading`` the task follows the section's last
    non-blank line. Otherwise it goes to the end of the document, after a
    blank separator line and, when ``heading`` is given, a new ``##`` heading.
    A final newline is preserved, as are CRLF endings.
    """
    eol = "\r" if any(line.endswith("\r") for line in lines) else ""
    if heading:
        heading_index = _find_heading(lines, heading)
        if heading_index is not None:
            index = _last_section_line(lines, heading_index) + 1
            lines.insert(index, task_line + eol)
            return index

    end = len(lines) - 1 if lines and lines[-1] == "" else len(lines)
    block: list[str] = []
    if end > 0 and lines[end - 1].strip():
        block.append(eol)
    if heading:
        title = heading.strip() if heading.lstrip().startswith("#") else f"## {heading.strip()}"
        block.extend([title + eol, eol])
    block.append(task_line + eol)
    lines[end:end] = block
    return end + len(block) - 1


def apply_task_create(
    library_root: Path,
    raw_path: str,
    updates: UpdateSet,
    settings: TaskSettings,
    heading: str | None = None,
) -> dict[str, Any]:
    """Render a new task from ``updates`` and insert it.

    The description comes from ``updates.content``. A missing document is
    created.
    """
    resolved_path = resolve_document_path(library_root, raw_path)
    display_path = resolved_path.relative_to(library_root).as_posix()

    if resolved_path.exists():
        current_content: str | None = read_text(resolved_path, display_path)
        lines = current_content.split("\n")
    else:
        current_content = None
        lines = [""]
        resolved_path.parent.mkdir(parents=True, exist_ok=True)

    fmt = settings.enabled_formats[0] if settings.enabled_formats else TASKS_FORMAT_TYPE
    blank = TaskRecord(
        file_path=display_path,
        file_name=resolved_path.stem,
        line_number=1,
        content="",
        description="",
        format=fmt,
    )
    body = serialize_task(blank, updates, fmt, settings.global_filter, settings.statuses)
    task_line = f"- {body}"

    index = insert_task_line(lines, task_line, heading)
    line_number = index + 1
    commit_sha = _persist_lines(
        library_root,
        resolved_path,
        current_content,
        lines,
        "create_task",
        line_number,
        "",
        task_line,
    )
    record = parse_task_line(
        lines[index],
        settings,
        file_path=display_path,
        file_name=resolved_path.stem,
        line_number=line_number,
    )
    logger.info("create_task added %s:%d", display_path, line_number)
    return {
        "task": record.to_dict() if record is not None else None,
        "line": task_line,
        "commitSha": commit_sha,
    }


# ==================== common update sets ====================


def completion_updates(record: TaskRecord, completed: bool, today: date) -> UpdateSet:
    """Toggle completion; completing stamps today's completion date."""
    if completed:
        return UpdateSet(completed=True, status="done", completion_date=today)
    return UpdateSet(
        completed=False,
        completion_date=CLEAR,
        status="todo" if record.status == "done" else KEEP,
    )


def date_field_updates(field: str, value: date | None) -> UpdateSet:
    return UpdateSet(**{field: CLEAR if value is None else value})


def cancel_updates(record: TaskRecord, today: date) -> UpdateSet:
    if record.cancelled or record.status == "canceled":
        raise McpError(
            "ALREADY_CANCELLED",
            "Task is already cancelled.",
            {"key": record.key},
        )
    if record.completed:
        raise McpError(
            "TASK_COMPLETED",
            "Completed tasks cannot be cancelled; reopen the task first.",
            {"key": record.key},
        )
    return UpdateSet(status="canceled", cancelled=True, cancelled_date=today)


def restore_updates(record: TaskRecord) -> UpdateSet:
    if record.completed:
        raise McpError(
            "TASK_COMPLETED",
            "Completed tasks cannot be restored.",
            {"key": record.key},
        )
    if not record.cancelled:
        raise McpError(
            "NOT_CANCELLED",
            "Task is not cancelled.",
            {"key": record.key},
        )
    return UpdateSet(status="todo", cancelled=False, cancelled_date=CLEAR)


def postpone_updates(record: TaskRecord, days: int, today: date) -> UpdateSet:
    """Move the due date ``days`` forward, starting from today when undated."""
    base = record.due_date or today
    return UpdateSet(due_date=base + timedelta(days=days))

"""Batch scanning of documents into task records."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Iterable

from taskline.parser import parse_task_line
from taskline.records import TaskRecord, TaskSettings
from taskline.store import collect_markdown_files, read_lines

logger = logging.getLogger(__name__)

LIST_ITEM_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s")


def list_item_lines(lines: list[str]) -> list[int]:
    """Return 0-based indexes of list items, the candidates for task parsing."""
    return [index for index, line in enumerate(lines) if LIST_ITEM_PATTERN.match(line)]


def scan_document(
    file_path: str,
    lines: list[str],
    settings: TaskSettings,
    candidates: Iterable[int] | None = None,
) -> list[TaskRecord]:
    """Parse the candidate lines of one document, in line order.

    ``candidates`` are 0-based line indexes supplied by the host's list-item
    index; when omitted they are computed with ``list_item_lines``.
    """
    file_name = PurePosixPath(file_path).stem
    indexes = list_item_lines(lines) if candidates is None else candidates

    records: list[TaskRecord] = []
    for index in sorted(set(indexes)):
        if index < 0 or index >= len(lines):
            continue
        record = parse_task_line(
            lines[index],
            settings,
            file_path=file_path,
            file_name=file_name,
            line_number=index + 1,
        )
        if record is not None:
            records.append(record)
    return records


def scan_library(
    library_root: Path,
    settings: TaskSettings,
    start_path: Path | None = None,
) -> list[TaskRecord]:
    """Scan every Markdown document under ``library_root``.

    Records are sorted by ``(file_name, line_number)``.
    """
    records: list[TaskRecord] = []
    documents = collect_markdown_files(library_root, start_path)
    for relative_path in documents:
        lines = read_lines(library_root / relative_path, relative_path)
        records.extend(scan_document(relative_path, lines, settings))

    logger.info("Scanned %d documents, found %d tasks", len(documents), len(records))
    return sorted(records, key=lambda r: (r.file_name, r.line_number, r.file_path))

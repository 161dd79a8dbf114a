"""Task tool endpoints."""

from __future__ import annotations

import dataclasses
from datetime import date
from typing import Any

from fastapi import Request

from taskline.context import get_request_config
from taskline.errors import McpError, success_response
from taskline.formats import detect_format, parse_iso_date
from taskline.parser import parse_task_line
from taskline.payload import (
    _ensure_payload_dict,
    _read_line_number,
    _reject_unknown_fields,
    _require_fields,
)
from taskline.records import DATE_FIELD_KEYS, UpdateSet
from taskline.router import tool_router
from taskline.scanner import scan_document, scan_library
from taskline.sorting import SORT_FIELDS, SORT_ORDERS, sort_tasks
from taskline.statuses import validate_symbol
from taskline.store import read_lines, resolve_document_path
from taskline.updater import (
    apply_task_create,
    apply_task_delete,
    apply_task_update,
    cancel_updates,
    completion_updates,
    date_field_updates,
    postpone_updates,
    read_task_at,
    restore_updates,
)

_SORT_KEYS = {
    "priority": "priority",
    "description": "description",
    **{DATE_FIELD_KEYS[name]: name for name in SORT_FIELDS if name.endswith("_date")},
}
_DATE_KEYS = {camel: name for name, camel in DATE_FIELD_KEYS.items()}


@tool_router.post("/tool:list_tasks")
def list_tasks(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Scan the library (or one document) and return matching tasks."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "status", "tag", "sort", "order", "warning"})

    config = get_request_config(request)
    settings = config.task_settings()
    library_root = config.library_path

    if payload.get("path") is not None:
        resolved = resolve_document_path(library_root, payload["path"])
        relative_path = resolved.relative_to(library_root).as_posix()
        tasks = scan_document(relative_path, read_lines(resolved, relative_path), settings)
    else:
        tasks = scan_library(library_root, settings)

    status = payload.get("status")
    if status is not None:
        if config.statuses.by_key(status) is None:
            raise McpError(
                "UNKNOWN_STATUS",
                "status must be a configured status key.",
                {"status": str(status)},
            )
        tasks = [task for task in tasks if task.status == status]

    tag = payload.get("tag")
    if tag is not None:
        if not isinstance(tag, str):
            raise McpError("INVALID_TYPE", "tag must be a string.", {"tag": str(tag)})
        wanted = tag.lstrip("#")
        tasks = [task for task in tasks if wanted in task.tags]

    warning = payload.get("warning")
    if warning is not None:
        tasks = [task for task in tasks if task.warning == warning]

    sort_key = payload.get("sort")
    if sort_key is not None:
        if sort_key not in _SORT_KEYS:
            raise McpError(
                "INVALID_SORT",
                "sort must name a sortable field.",
                {"sort": str(sort_key), "allowed": sorted(_SORT_KEYS)},
            )
        order = payload.get("order", "asc")
        if order not in SORT_ORDERS:
            raise McpError(
                "INVALID_SORT",
                "order must be asc or desc.",
                {"order": str(order)},
            )
        tasks = sort_tasks(tasks, _SORT_KEYS[sort_key], order)

    return success_response({"tasks": [task.to_dict() for task in tasks]})


@tool_router.post("/tool:parse_task_line")
def parse_task_line_tool(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Parse a single line with the configured settings, without touching files."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"line"})
    _require_fields(payload, ["line"])
    line = payload["line"]
    if not isinstance(line, str):
        raise McpError("INVALID_TYPE", "line must be a string.", {"line": str(line)})

    settings = get_request_config(request).task_settings()
    record = parse_task_line(line, settings)
    return success_response(
        {
            "task": record.to_dict() if record is not None else None,
            "detectedFormat": detect_format(line, settings.enabled_formats),
        }
    )


@tool_router.post("/tool:update_task")
def update_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Apply a sparse update to the task on ``path:lineNumber``.

    Omitted fields are kept; ``null`` date fields are cleared.
    """
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "lineNumber", "fields"})
    _require_fields(payload, ["path", "lineNumber", "fields"])
    line_number = _read_line_number(payload)
    fields = _ensure_payload_dict(payload["fields"])

    config = get_request_config(request)
    updates = UpdateSet.from_payload(fields, config.statuses)
    result = apply_task_update(
        config.library_path,
        payload["path"],
        line_number,
        updates,
        config.task_settings(),
        operation="update_task",
    )
    return success_response(result)


@tool_router.post("/tool:create_task")
def create_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Add a new open task to a document, optionally under a heading.

    ``fields`` takes the same keys as ``update_task`` except ``content``.
    ``createdDate`` defaults to today; pass ``null`` to leave it off.
    """
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "description", "fields", "heading"})
    _require_fields(payload, ["path", "description"])

    description = payload["description"]
    if not isinstance(description, str) or not description.strip():
        raise McpError(
            "INVALID_TYPE",
            "description must be a non-empty string.",
            {"description": str(description)},
        )
    heading = payload.get("heading")
    if heading is not None and (
        not isinstance(heading, str) or not heading.strip() or "\n" in heading or "\r" in heading
    ):
        raise McpError(
            "INVALID_TYPE",
            "heading must be a single-line string.",
            {"heading": str(heading)},
        )
    fields = _ensure_payload_dict(payload.get("fields", {}))
    if "content" in fields:
        raise McpError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": ["content"]},
        )

    config = get_request_config(request)
    updates = UpdateSet.from_payload({**fields, "content": description}, config.statuses)
    if "createdDate" not in fields:
        updates = dataclasses.replace(updates, created_date=date.today())
    result = apply_task_create(
        config.library_path,
        payload["path"],
        updates,
        config.task_settings(),
        heading=heading,
    )
    return success_response(result)


@tool_router.post("/tool:delete_task")
def delete_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Remove the task line on ``path:lineNumber``; later lines move up."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "lineNumber"})
    _require_fields(payload, ["path", "lineNumber"])
    line_number = _read_line_number(payload)

    config = get_request_config(request)
    result = apply_task_delete(
        config.library_path, payload["path"], line_number, config.task_settings()
    )
    return success_response(result)


@tool_router.post("/tool:complete_task")
def complete_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Mark a task done (stamping today's completion date) or reopen it."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "lineNumber", "completed"})
    _require_fields(payload, ["path", "lineNumber"])
    line_number = _read_line_number(payload)
    completed = payload.get("completed", True)
    if not isinstance(completed, bool):
        raise McpError(
            "INVALID_TYPE", "completed must be a boolean.", {"completed": str(completed)}
        )

    return _apply_record_update(
        request,
        payload["path"],
        line_number,
        "complete_task" if completed else "reopen_task",
        lambda record: completion_updates(record, completed, date.today()),
    )


@tool_router.post("/tool:set_task_date")
def set_task_date(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Set or clear (``date: null``) one date field of a task."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "lineNumber", "field", "date"})
    _require_fields(payload, ["path", "lineNumber", "field", "date"])
    line_number = _read_line_number(payload)

    field = _DATE_KEYS.get(payload["field"])
    if field is None:
        raise McpError(
            "INVALID_FIELD",
            "field must name a task date field.",
            {"field": str(payload["field"]), "allowed": sorted(_DATE_KEYS)},
        )
    value = None
    if payload["date"] is not None:
        value = parse_iso_date(payload["date"]) if isinstance(payload["date"], str) else None
        if value is None:
            raise McpError(
                "INVALID_DATE",
                "date must be a yyyy-MM-dd date or null.",
                {"date": str(payload["date"])},
            )

    return _apply_record_update(
        request,
        payload["path"],
        line_number,
        "set_task_date",
        lambda record: date_field_updates(field, value),
    )


@tool_router.post("/tool:cancel_task")
def cancel_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Cancel an open task and stamp today's cancellation date."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "lineNumber"})
    _require_fields(payload, ["path", "lineNumber"])
    return _apply_record_update(
        request,
        payload["path"],
        _read_line_number(payload),
        "cancel_task",
        lambda record: cancel_updates(record, date.today()),
    )


@tool_router.post("/tool:restore_task")
def restore_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Undo a cancellation."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "lineNumber"})
    _require_fields(payload, ["path", "lineNumber"])
    return _apply_record_update(
        request,
        payload["path"],
        _read_line_number(payload),
        "restore_task",
        restore_updates,
    )


@tool_router.post("/tool:postpone_task")
def postpone_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "lineNumber", "days"})
    _require_fields(payload, ["path", "lineNumber", "days"])
    days = payload["days"]
    if not isinstance(days, int) or isinstance(days, bool):
        raise McpError("INVALID_TYPE", "days must be an integer.", {"days": str(days)})
    return _apply_record_update(
        request,
        payload["path"],
        _read_line_number(payload),
        "postpone_task",
        lambda record: postpone_updates(record, days, date.today()),
    )


@tool_router.post("/tool:list_statuses")
def list_statuses(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, set())
    registry = get_request_config(request).statuses
    return success_response(
        {"statuses": [descriptor.to_dict() for descriptor in registry.descriptors()]}
    )


@tool_router.post("/tool:validate_status_symbol")
def validate_status_symbol(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"symbol", "isCustom"})
    _require_fields(payload, ["symbol"])
    is_custom = payload.get("isCustom", True)
    if not isinstance(is_custom, bool):
        raise McpError(
            "INVALID_TYPE", "isCustom must be a boolean.", {"isCustom": str(is_custom)}
        )

    check = validate_symbol(payload["symbol"], is_custom=is_custom)
    registry = get_request_config(request).statuses
    if check.valid and registry.by_symbol(payload["symbol"]) is not None and is_custom:
        return success_response(
            {"valid": False, "reason": "Symbol is already used by a configured status."}
        )
    return success_response({"valid": check.valid, "reason": check.reason})


def _apply_record_update(request, raw_path, line_number, operation, build_updates):
    config = get_request_config(request)
    settings = config.task_settings()
    resolved = resolve_document_path(config.library_path, raw_path)
    relative_path = resolved.relative_to(config.library_path).as_posix()

    record = read_task_at(read_lines(resolved, relative_path), line_number, settings, relative_path)
    updates = build_updates(record)
    result = apply_task_update(
        config.library_path,
        raw_path,
        line_number,
        updates,
        settings,
        operation=operation,
        record=record,
    )
    return success_response(result)

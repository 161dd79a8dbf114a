"""Activity log of task mutations."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import Request

from taskline.constants import ACTIVITY_LOG_FILENAME
from taskline.context import get_request_config
from taskline.errors import McpError, success_response
from taskline.payload import _ensure_payload_dict, _reject_unknown_fields
from taskline.router import tool_router


def _activity_log_path(library_root: Path) -> Path:
    return library_root / ACTIVITY_LOG_FILENAME


def _append_activity_log(library_root: Path, entry: dict[str, Any]) -> None:
    payload = json.dumps(entry, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    with _activity_log_path(library_root).open("a", encoding="utf-8") as log_file:
        log_file.write(payload + "\n")
        log_file.flush()
        os.fsync(log_file.fileno())


def _build_activity_entry(
    operation: str,
    relative_path: Path,
    line_number: int,
    before: str,
    after: str,
    commit_sha: str,
) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "operation": operation,
        "path": relative_path.as_posix(),
        "lineNumber": line_number,
        "before": before,
        "after": after,
        "commitSha": commit_sha,
    }


def _read_activity_entries(
    library_root: Path, since: datetime | None, limit: int
) -> list[dict[str, Any]]:
    log_path = _activity_log_path(library_root)
    if not log_path.exists():
        return []
    entries: list[dict[str, Any]] = []
    for line in log_path.read_text(encoding="utf-8").splitlines():
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if since is not None:
            try:
                entry_time = datetime.fromisoformat(entry.get("timestamp"))
            except (TypeError, ValueError):
                entry_time = None
            if entry_time and entry_time < since:
                continue
        entries.append(entry)
    return entries[-limit:]


@tool_router.post("/tool:read_activity_log")
def read_activity_log(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Read the most recent task mutations."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"limit", "since"})

    limit = payload.get("limit", 50)
    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        raise McpError(
            "INVALID_TYPE",
            "limit must be a positive integer.",
            {"limit": str(limit)},
        )

    since = None
    if payload.get("since") is not None:
        try:
            since = datetime.fromisoformat(str(payload["since"]))
        except ValueError as exc:
            raise McpError(
                "INVALID_DATE",
                "since must be an ISO date-time.",
                {"since": payload["since"]},
            ) from exc
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

    config = get_request_config(request)
    entries = _read_activity_entries(config.library_path, since, limit)
    return success_response({"entries": entries})

"""Payload validation helpers for tool endpoints."""

from __future__ import annotations

from typing import Any

from taskline.errors import McpError


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise McpError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise McpError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown_fields},
        )


def _require_fields(payload: dict[str, Any], required: list[str]) -> None:
    missing = [name for name in required if name not in payload]
    if missing:
        raise McpError(
            "MISSING_FIELDS",
            f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} required.",
            {"fields": missing},
        )


def _read_line_number(payload: dict[str, Any]) -> int:
    line_number = payload.get("lineNumber")
    if not isinstance(line_number, int) or isinstance(line_number, bool):
        raise McpError(
            "INVALID_TYPE",
            "lineNumber must be an integer.",
            {"lineNumber": str(line_number)},
        )
    return line_number

"""Structured error types for task tool responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

# Write-path codes. A client seeing one of the first three re-scans the
# document before retrying; the last two mean the mutation was rolled back.
INVALID_LINE_INDEX = "INVALID_LINE_INDEX"
MALFORMED_LIST_MARKER = "MALFORMED_LIST_MARKER"
NOT_A_TASK_LINE = "NOT_A_TASK_LINE"
GIT_ERROR = "GIT_ERROR"
LOG_ERROR = "LOG_ERROR"

WRITE_PATH_ERRORS = (
    INVALID_LINE_INDEX,
    MALFORMED_LIST_MARKER,
    NOT_A_TASK_LINE,
    GIT_ERROR,
    LOG_ERROR,
)


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by tool handlers."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class McpError(RuntimeError):
    """Exception carrying a structured error response.

    Raised on the write path (line index out of range, list marker no longer
    matching, git/log failures) and for malformed tool payloads. The parse
    path never raises; it skips lines or drops fields instead.
    """

    def __init__(
        self, code: str, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code, message=message, details=dict(details or {})
        )

    @property
    def code(self) -> str:
        return self.error.code


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a successful tool response in the standard envelope."""
    return {"ok": True, "data": payload}


def error_response(error: ErrorResponse) -> dict[str, Any]:
    """Wrap an error response in the standard envelope."""
    return {"ok": False, "error": error.to_dict()}

from taskline.errors import (
    WRITE_PATH_ERRORS,
    ErrorResponse,
    McpError,
    error_response,
    success_response,
)


def test_error_response_serializes_details():
    error = ErrorResponse(
        code="INVALID_LINE_INDEX", message="Nope", details={"lineNumber": 9}
    )

    assert error.to_dict() == {
        "code": "INVALID_LINE_INDEX",
        "message": "Nope",
        "details": {"lineNumber": 9},
    }


def test_mcp_error_defaults_details():
    exc = McpError("INVALID_TYPE", "Bad path")

    assert exc.code == "INVALID_TYPE"
    assert str(exc) == "Bad path"
    assert exc.error.to_dict() == {
        "code": "INVALID_TYPE",
        "message": "Bad path",
        "details": {},
    }


def test_response_envelopes():
    assert success_response({"tasks": []}) == {"ok": True, "data": {"tasks": []}}
    assert error_response(ErrorResponse("X", "y")) == {
        "ok": False,
        "error": {"code": "X", "message": "y", "details": {}},
    }


def test_write_path_codes_are_named_constants():
    assert WRITE_PATH_ERRORS == (
        "INVALID_LINE_INDEX",
        "MALFORMED_LIST_MARKER",
        "NOT_A_TASK_LINE",
        "GIT_ERROR",
        "LOG_ERROR",
    )

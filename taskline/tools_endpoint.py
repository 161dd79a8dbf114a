"""Tool definition endpoint."""

from __future__ import annotations

from typing import Any

from taskline.errors import McpError, success_response
from taskline.router import tool_router
from tools.task_tools import ToolSchemaError, load_tool_definitions, unrouted_tools


@tool_router.get("/tools")
def list_tool_schemas() -> dict[str, Any]:
    """Return the tool definitions, all of which must be served by this app."""
    try:
        tools = load_tool_definitions()
    except ToolSchemaError as exc:
        raise McpError(
            "TOOL_SCHEMA_ERROR",
            "Tool definitions could not be loaded.",
            {"error": str(exc)},
        ) from exc

    # Read the router itself; an app may wrap included routers in its route list.
    route_paths = [getattr(route, "path", None) or "" for route in tool_router.routes]
    missing = unrouted_tools(tools, route_paths)
    if missing:
        raise McpError(
            "TOOL_SCHEMA_ERROR",
            "Tool definitions name endpoints that are not registered.",
            {"tools": missing},
        )
    return success_response({"tools": tools})

"""Request-scoped access to the loaded configuration."""

from __future__ import annotations

from fastapi import Request

from taskline.config import AppConfig
from taskline.errors import McpError


def get_request_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise McpError(
            "NOT_CONFIGURED",
            "Service configuration has not been loaded.",
        )
    return config

"""FastAPI entrypoint for the task service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskline.config import load_config
from taskline.errors import ErrorResponse, McpError, error_response
from taskline.router import tool_router

# Import modules to register routes with the shared router.
from taskline import activity, tasks_api, tools_endpoint  # noqa: F401

SERVICE_TOKEN_HEADER = "X-Taskline-Service-Token"
AUTH_EXEMPT_PATHS = {"/health"}


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = load_config()
        logging.getLogger("taskline").setLevel(config.log_level)
        app.state.config = config
        yield

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_service_token(request: Request, call_next):
        if request.url.path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        service_token = getattr(config, "service_token", None)
        if service_token and request.headers.get(SERVICE_TOKEN_HEADER) != service_token:
            error = ErrorResponse(
                code="AUTH_FORBIDDEN",
                message="Invalid service token.",
                details={"header": SERVICE_TOKEN_HEADER},
            )
            return JSONResponse(status_code=403, content=error_response(error))

        return await call_next(request)

    @app.exception_handler(McpError)
    def handle_mcp_error(request: Request, exc: McpError) -> JSONResponse:
        return JSONResponse(status_code=400, content=error_response(exc.error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(tool_router)
    return app


app = create_app()

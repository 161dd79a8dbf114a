from fastapi.testclient import TestClient

import taskline.tools_endpoint as tools_endpoint
from taskline.main import create_app
from tools.task_tools import ToolSchemaError


def test_tools_endpoint_returns_tool_definitions(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKLINE_LIBRARY_PATH", str(tmp_path))
    monkeypatch.delenv("TASKLINE_SERVICE_TOKEN", raising=False)

    app = create_app()
    with TestClient(app) as client:
        response = client.get("/tools")

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    names = {tool["function"]["name"] for tool in payload["data"]["tools"]}
    assert {"list_tasks", "update_task", "complete_task"} <= names


def test_tools_endpoint_reports_schema_errors(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKLINE_LIBRARY_PATH", str(tmp_path))
    monkeypatch.delenv("TASKLINE_SERVICE_TOKEN", raising=False)

    def _broken_loader():
        raise ToolSchemaError("broken")

    monkeypatch.setattr(tools_endpoint, "load_tool_definitions", _broken_loader)

    app = create_app()
    with TestClient(app) as client:
        response = client.get("/tools")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "TOOL_SCHEMA_ERROR"


def test_tools_endpoint_rejects_unrouted_definitions(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKLINE_LIBRARY_PATH", str(tmp_path))
    monkeypatch.delenv("TASKLINE_SERVICE_TOKEN", raising=False)
    ghost = {
        "type": "function",
        "function": {"name": "ghost", "parameters": {"type": "object"}},
    }
    monkeypatch.setattr(tools_endpoint, "load_tool_definitions", lambda: [ghost])

    app = create_app()
    with TestClient(app) as client:
        response = client.get("/tools")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "TOOL_SCHEMA_ERROR"
    assert error["details"]["tools"] == ["ghost"]


def test_tool_schemas_checked_against_router_not_app_routes():
    # The check must not depend on how an app lists included routers.
    payload = tools_endpoint.list_tool_schemas()

    names = {tool["function"]["name"] for tool in payload["data"]["tools"]}
    assert {"create_task", "delete_task"} <= names

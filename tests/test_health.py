from taskline.main import create_app, tool_router


def _get_health_route(app):
    for route in app.routes:
        if getattr(route, "path", None) == "/health" and "GET" in getattr(
            route, "methods", set()
        ):
            return route
    raise AssertionError("Health route not registered")


def test_health_endpoint(monkeypatch, tmp_path):
    monkeypatch.setenv("TASKLINE_LIBRARY_PATH", str(tmp_path))
    app = create_app()

    route = _get_health_route(app)

    assert route.status_code == 200
    assert route.endpoint() == {"status": "ok"}


def test_tool_routes_registered():
    paths = {route.path for route in tool_router.routes}

    for name in (
        "list_tasks",
        "parse_task_line",
        "update_task",
        "create_task",
        "delete_task",
        "complete_task",
        "set_task_date",
        "cancel_task",
        "restore_task",
        "postpone_task",
        "list_statuses",
        "validate_status_symbol",
        "read_activity_log",
    ):
        assert f"/tool:{name}" in paths
    assert "/tools" in paths

from __future__ import annotations

import json
from pathlib import Path

from dulwich import porcelain
from fastapi.testclient import TestClient

from taskline.constants import ACTIVITY_LOG_FILENAME
from taskline.main import SERVICE_TOKEN_HEADER, create_app


def _seed_library(library_root: Path) -> Path:
    notes = library_root / "notes"
    notes.mkdir(parents=True)
    plan = notes / "plan.md"
    plan.write_text(
        "\n".join(
            [
                "# Plan",
                "",
                "- [ ] Draft proposal ⏫ 📅 2024-03-01",
                "- [ ] Book venue [due:: 2024-04-01]",
                "- [ ] Mixed ⏫ [due:: 2024-04-02]",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return plan


def _read_activity_entries(library_root: Path) -> list[dict[str, str]]:
    log_path = library_root / ACTIVITY_LOG_FILENAME
    assert log_path.exists()
    return [
        json.loads(line)
        for line in log_path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def _assert_repo_clean(library_root: Path) -> None:
    status = porcelain.status(library_root)
    assert not status.unstaged
    untracked = {
        item.decode("utf-8") if isinstance(item, bytes) else str(item)
        for item in status.untracked
    }
    assert untracked.issubset({ACTIVITY_LOG_FILENAME})
    assert not any(status.staged.values())


def test_task_endpoints_scan_and_rewrite(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKLINE_LIBRARY_PATH", str(tmp_path))
    monkeypatch.setenv("TASKLINE_ENABLED_FORMATS", "tasks,dataview")
    monkeypatch.delenv("TASKLINE_SERVICE_TOKEN", raising=False)
    plan = _seed_library(tmp_path)

    app = create_app()
    with TestClient(app) as client:
        response = client.post("/tool:list_tasks", json={"sort": "dueDate"})
        assert response.status_code == 200
        tasks = response.json()["data"]["tasks"]
        assert [task["description"] for task in tasks] == [
            "Draft proposal",
            "Book venue",
            "Mixed",
        ]
        assert [task["format"] for task in tasks] == ["tasks", "dataview", "tasks"]
        assert tasks[2]["warning"] == "mixed-format"

        response = client.post(
            "/tool:update_task",
            json={
                "path": "notes/plan.md",
                "lineNumber": 4,
                "fields": {"status": "done", "completionDate": "2024-03-30"},
            },
        )
        assert response.status_code == 200
        update_data = response.json()["data"]
        assert update_data["line"] == (
            "- [x] Book venue [due:: 2024-04-01] [completion:: 2024-03-30]"
        )

        response = client.post(
            "/tool:set_task_date",
            json={"path": "notes/plan.md", "lineNumber": 3, "field": "dueDate", "date": None},
        )
        assert response.status_code == 200
        date_data = response.json()["data"]

        response = client.post(
            "/tool:update_task",
            json={"path": "notes/plan.md", "lineNumber": 1, "fields": {}},
        )
        assert response.status_code == 400
        error = response.json()
        assert error["ok"] is False
        assert error["error"]["code"] == "MALFORMED_LIST_MARKER"

    assert plan.read_text(encoding="utf-8").splitlines()[2:5] == [
        "- [ ] Draft proposal ⏫",
        "- [x] Book venue [due:: 2024-04-01] [completion:: 2024-03-30]",
        "- [ ] Mixed ⏫ [due:: 2024-04-02]",
    ]
    entries = _read_activity_entries(tmp_path)
    assert [entry["operation"] for entry in entries] == ["update_task", "set_task_date"]
    assert entries[0]["commitSha"] == update_data["commitSha"]
    assert entries[1]["commitSha"] == date_data["commitSha"]
    _assert_repo_clean(tmp_path)


def test_service_token_is_enforced(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKLINE_LIBRARY_PATH", str(tmp_path))
    monkeypatch.setenv("TASKLINE_SERVICE_TOKEN", "secret")

    app = create_app()
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200

        response = client.post("/tool:list_statuses", json={})
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_FORBIDDEN"

        response = client.post(
            "/tool:list_statuses", json={}, headers={SERVICE_TOKEN_HEADER: "secret"}
        )
        assert response.status_code == 200
        assert len(response.json()["data"]["statuses"]) == 7


def test_create_and_delete_over_http(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKLINE_LIBRARY_PATH", str(tmp_path))
    monkeypatch.delenv("TASKLINE_SERVICE_TOKEN", raising=False)
    plan = _seed_library(tmp_path)

    app = create_app()
    with TestClient(app) as client:
        response = client.post(
            "/tool:create_task",
            json={
                "path": "notes/plan.md",
                "description": "Send invites",
                "heading": "Plan",
                "fields": {"createdDate": None, "dueDate": "2024-04-10"},
            },
        )
        assert response.status_code == 200
        created = response.json()["data"]
        assert created["line"] == "- [ ] Send invites 📅 2024-04-10"
        assert created["task"]["lineNumber"] == 6

        response = client.post(
            "/tool:delete_task", json={"path": "notes/plan.md", "lineNumber": 3}
        )
        assert response.status_code == 200
        deleted = response.json()["data"]

        response = client.post(
            "/tool:create_task",
            json={"path": "notes/plan.md", "description": "Bad\n- [x] extra"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TYPE"

    assert plan.read_text(encoding="utf-8").splitlines()[2:] == [
        "- [ ] Book venue [due:: 2024-04-01]",
        "- [ ] Mixed ⏫ [due:: 2024-04-02]",
        "- [ ] Send invites 📅 2024-04-10",
    ]
    entries = _read_activity_entries(tmp_path)
    assert [entry["operation"] for entry in entries] == ["create_task", "delete_task"]
    assert entries[1]["commitSha"] == deleted["commitSha"]
    _assert_repo_clean(tmp_path)

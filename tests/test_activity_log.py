import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from taskline.activity import _activity_log_path, read_activity_log
from taskline.config import AppConfig
from taskline.errors import McpError
from taskline.statuses import DEFAULT_REGISTRY
from taskline.tasks_api import complete_task, set_task_date


def _build_request(library_root):
    config = AppConfig(
        library_path=library_root,
        service_token=None,
        enabled_formats=("tasks",),
        global_filter="",
        statuses=DEFAULT_REGISTRY,
    )
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(config=config)))


def _read_activity_entries(library_root):
    log_path = _activity_log_path(library_root)
    assert log_path.exists()
    return [
        json.loads(line)
        for line in log_path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def test_mutations_append_activity_entries(tmp_path):
    (tmp_path / "todo.md").write_text("- [ ] Buy milk\n", encoding="utf-8")
    request = _build_request(tmp_path)

    completed = complete_task({"path": "todo.md", "lineNumber": 1}, request)
    dated = set_task_date(
        {"path": "todo.md", "lineNumber": 1, "field": "dueDate", "date": "2024-01-15"},
        request,
    )

    entries = _read_activity_entries(tmp_path)
    assert [entry["operation"] for entry in entries] == ["complete_task", "set_task_date"]
    first = entries[0]
    assert first["path"] == "todo.md"
    assert first["lineNumber"] == 1
    assert first["before"] == "- [ ] Buy milk"
    assert first["after"] == completed["data"]["line"]
    assert first["commitSha"] == completed["data"]["commitSha"]
    assert entries[1]["commitSha"] == dated["data"]["commitSha"]
    datetime.fromisoformat(first["timestamp"])


def test_read_activity_log_applies_limit_and_since(tmp_path):
    now = datetime.now(timezone.utc)
    log_path = _activity_log_path(tmp_path)
    lines = [
        json.dumps({"timestamp": (now - timedelta(days=2)).isoformat(), "operation": "old"}),
        "not json",
        json.dumps({"timestamp": (now - timedelta(minutes=5)).isoformat(), "operation": "recent"}),
        json.dumps({"timestamp": now.isoformat(), "operation": "latest"}),
    ]
    log_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    request = _build_request(tmp_path)

    limited = read_activity_log({"limit": 2}, request)["data"]["entries"]
    assert [entry["operation"] for entry in limited] == ["recent", "latest"]

    since = (now - timedelta(days=1)).replace(tzinfo=None).isoformat()
    recent = read_activity_log({"since": since}, request)["data"]["entries"]
    assert [entry["operation"] for entry in recent] == ["recent", "latest"]


def test_read_activity_log_without_log_file(tmp_path):
    assert read_activity_log({}, _build_request(tmp_path))["data"]["entries"] == []


@pytest.mark.parametrize(
    ("payload", "code"),
    [
        ({"limit": 0}, "INVALID_TYPE"),
        ({"limit": True}, "INVALID_TYPE"),
        ({"since": "yesterday"}, "INVALID_DATE"),
    ],
)
def test_read_activity_log_rejects_invalid_payload(tmp_path, payload, code):
    with pytest.raises(McpError) as excinfo:
        read_activity_log(payload, _build_request(tmp_path))

    assert excinfo.value.error.code == code

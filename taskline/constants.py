"""Shared constants for task parsing and the tool endpoints."""

from __future__ import annotations

TASKS_FORMAT_TYPE = "tasks"
DATAVIEW_FORMAT_TYPE = "dataview"
MIXED_FORMAT = "mixed"
SUPPORTED_FORMATS = (TASKS_FORMAT_TYPE, DATAVIEW_FORMAT_TYPE)

PRIORITY_LEVELS = ("highest", "high", "medium", "normal", "low", "lowest")
DEFAULT_PRIORITY = "normal"

# Rendering order is fixed; serializers iterate this tuple.
DATE_FIELDS = (
    "created_date",
    "start_date",
    "scheduled_date",
    "due_date",
    "cancelled_date",
    "completion_date",
)

WARNING_MIXED_FORMAT = "mixed-format"
WARNING_UNSCHEDULED = "unscheduled"

ALLOWED_MARKDOWN_EXTENSIONS = {".md", ".markdown"}
ACTIVITY_LOG_FILENAME = "activity.log"

# A tag name starts with a letter or CJK ideograph; digits may follow.
TAG_NAME = r"[A-Za-z\u4e00-\u9fa5][A-Za-z0-9_\u4e00-\u9fa5]*"

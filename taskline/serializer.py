"""Merge a task record with an update set and render it back to text."""

from __future__ import annotations

from taskline.constants import DATE_FIELDS, DEFAULT_PRIORITY
from taskline.formats import FORMAT_CONFIGS
from taskline.records import CLEAR, KEEP, MergedTask, TaskRecord, UpdateSet
from taskline.statuses import StatusRegistry


def _pick(update, current):
    return current if update is KEEP else update


def _merge_status(record: TaskRecord, updates: UpdateSet) -> tuple[bool, bool, str | None]:
    completed = _pick(updates.completed, record.completed)
    cancelled = _pick(updates.cancelled, record.cancelled)

    if updates.status is not KEEP:
        status = updates.status
        if updates.completed is KEEP:
            completed = status == "done"
        if updates.cancelled is KEEP:
            cancelled = status == "canceled"
        return completed, cancelled, status

    if updates.completed is KEEP and updates.cancelled is KEEP:
        return completed, cancelled, record.status

    # Booleans changed without an explicit status; keep the status in step.
    if cancelled:
        status = "canceled"
    elif completed:
        status = "done"
    elif record.status in ("done", "canceled"):
        status = "todo"
    else:
        status = record.status
    return completed, cancelled, status


def merge_task(record: TaskRecord, updates: UpdateSet) -> MergedTask:
    completed, cancelled, status = _merge_status(record, updates)

    dates = {}
    for name in DATE_FIELDS:
        update = getattr(updates, name)
        if update is KEEP:
            value = getattr(record, name)
        elif update is CLEAR:
            value = None
        else:
            value = update
        if value is not None:
            dates[name] = value

    return MergedTask(
        completed=completed,
        cancelled=cancelled,
        status=status,
        priority=_pick(updates.priority, record.priority) or DEFAULT_PRIORITY,
        description=_pick(updates.content, record.description),
        tags=tuple(_pick(updates.tags, record.tags) or ()),
        dates=dates,
    )


def checkbox_symbol(merged: MergedTask, statuses: StatusRegistry) -> str:
    if merged.status:
        descriptor = statuses.by_key(merged.status)
        return descriptor.symbol if descriptor is not None else " "
    if merged.cancelled:
        return "-"
    if merged.completed:
        return "x"
    return " "


def serialize_task(
    record: TaskRecord,
    updates: UpdateSet,
    fmt: str,
    global_filter: str,
    statuses: StatusRegistry,
) -> str:
    """Render the merged task as one canonical line without its list marker.

    Field order never varies: checkbox, global filter, tags, description,
    priority, then created/start/scheduled/due/cancelled/completion dates.
    """
    if fmt not in FORMAT_CONFIGS:
        raise ValueError(f"Unsupported task format: {fmt}")
    config = FORMAT_CONFIGS[fmt]
    merged = merge_task(record, updates)

    parts = [f"[{checkbox_symbol(merged, statuses)}]"]

    global_filter = (global_filter or "").strip()
    if global_filter:
        parts.append(global_filter)

    if merged.tags:
        parts.append(" ".join(f"#{tag}" for tag in merged.tags))

    if merged.description:
        parts.append(merged.description)

    priority_token = config.render_priority(merged.priority)
    if priority_token:
        parts.append(priority_token)

    for name in DATE_FIELDS:
        value = merged.dates.get(name)
        if value is not None:
            parts.append(config.render_date(name, value))

    return " ".join(parts)

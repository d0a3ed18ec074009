"""Structured project activity log.

Rows store the action key and JSON snapshots of the values before and after
the change. Human-readable text is rendered only when logs are read, so the
wording can change without rewriting history.
"""
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy.orm import Session, selectinload

from jobtrack.models import ProjectLog


logger = logging.getLogger(__name__)

ACTION_PROJECT_CREATED = "project.created"
ACTION_PROJECT_UPDATED = "project.updated"
ACTION_PROJECT_STATUS_CHANGED = "project.status_changed"
ACTION_DAY_CREATED = "project_day.created"
ACTION_DAY_UPDATED = "project_day.updated"
ACTION_DAY_DELETED = "project_day.deleted"
ACTION_ITEMS_ADDED = "project_items.added"
ACTION_ITEM_UPDATED = "project_item.updated"
ACTION_ITEM_REMOVED = "project_item.removed"
ACTION_ITEM_CREATED = "item.created"
ACTION_PERSONNEL_ADDED = "personnel.added"
ACTION_PERSONNEL_REMOVED = "personnel.removed"

DATE_DISPLAY_FORMAT = "%B %d, %Y"


def _json_default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _dump(value: dict | None) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=_json_default, sort_keys=True)


def _load(raw: str | None) -> dict:
    if not raw:
        return {}
    return json.loads(raw)


def record_project_log(
    db: Session,
    *,
    project_id: int,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    project_day_id: int | None = None,
    before: dict | None = None,
    after: dict | None = None,
    actor_id: int | None = None,
    log_type: str = "activity",
) -> ProjectLog:
    log = ProjectLog(
        project_id=project_id,
        project_day_id=project_day_id,
        log_type=log_type,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before_value=_dump(before),
        after_value=_dump(after),
        recorded_by=actor_id,
        created_at=datetime.utcnow(),
    )
    db.add(log)
    logger.debug("Project log recorded: project_id=%s action=%s entity_id=%s", project_id, action, entity_id)
    return log


def format_display_date(value: str | date | None) -> str:
    if value is None:
        return "unscheduled"
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return value.strftime(DATE_DISPLAY_FORMAT)


def _label(field: str) -> str:
    return field.replace("_", " ")


def _display_value(field: str, value: Any) -> str:
    if value is None or value == "":
        return "none"
    if field in {"project_date", "date"}:
        return format_display_date(value)
    return str(value)


def describe_changes(before: dict, after: dict) -> str:
    parts = []
    for field in after:
        if field.endswith("_name") and field != "location_name":
            continue
        parts.append(
            f"{_label(field)} changed from {_display_value(field, before.get(field))} "
            f"to {_display_value(field, after.get(field))}"
        )
    return "; ".join(parts)


def _at_location(location_name: str | None) -> str:
    return f" at {location_name}" if location_name else ""


def _render_project_created(before: dict, after: dict) -> str:
    return f"Project {after.get('jo_number')} created: {after.get('name')}"


def _render_project_updated(before: dict, after: dict) -> str:
    return f"Project updated: {describe_changes(before, after)}"


def _render_status_changed(before: dict, after: dict) -> str:
    return f"Project status changed from {before.get('status')} to {after.get('status')}"


def _render_day_created(before: dict, after: dict) -> str:
    return f"Added project day {format_display_date(after.get('project_date'))}{_at_location(after.get('location_name'))}"


def _render_day_updated(before: dict, after: dict) -> str:
    day_label = format_display_date(before.get("project_date") or after.get("project_date"))
    diff = describe_changes(
        {("date" if key == "project_date" else key.replace("_name", "")): value for key, value in before.items()},
        {("date" if key == "project_date" else key.replace("_name", "")): value for key, value in after.items()},
    )
    return f"Updated project day {day_label}: {diff}"


def _render_day_deleted(before: dict, after: dict) -> str:
    return f"Deleted project day {format_display_date(before.get('project_date'))}{_at_location(before.get('location_name'))}"


def _render_items_added(before: dict, after: dict) -> str:
    summaries = []
    for entry in after.get("items", []):
        days = int(entry.get("days", 1))
        day_label = "day" if days == 1 else "days"
        summaries.append(f"{entry.get('item_name')} ({entry.get('allocated_quantity')} x {days} {day_label})")
    return "Allocated items: " + ", ".join(summaries)


def _render_item_updated(before: dict, after: dict) -> str:
    item_name = after.get("item_name") or before.get("item_name") or "item"
    return f"Updated {item_name} allocation: {describe_changes(before, after)}"


def _render_item_removed(before: dict, after: dict) -> str:
    return (
        f"Removed {before.get('item_name')} ({before.get('allocated_quantity')}) "
        f"from {format_display_date(before.get('project_date'))}"
    )


def _render_item_created(before: dict, after: dict) -> str:
    return f"Created inventory item {after.get('name')} ({after.get('type')})"


def _render_personnel_added(before: dict, after: dict) -> str:
    pairs = ", ".join(
        f"{entry.get('personnel_name')} as {entry.get('role_name')}" for entry in after.get("assignments", [])
    )
    return f"Assigned personnel: {pairs}"


def _render_personnel_removed(before: dict, after: dict) -> str:
    return (
        f"Removed {before.get('personnel_name')} ({before.get('role_name')}) "
        f"from {format_display_date(before.get('project_date'))}"
    )


RENDERERS: dict[str, Callable[[dict, dict], str]] = {
    ACTION_PROJECT_CREATED: _render_project_created,
    ACTION_PROJECT_UPDATED: _render_project_updated,
    ACTION_PROJECT_STATUS_CHANGED: _render_status_changed,
    ACTION_DAY_CREATED: _render_day_created,
    ACTION_DAY_UPDATED: _render_day_updated,
    ACTION_DAY_DELETED: _render_day_deleted,
    ACTION_ITEMS_ADDED: _render_items_added,
    ACTION_ITEM_UPDATED: _render_item_updated,
    ACTION_ITEM_REMOVED: _render_item_removed,
    ACTION_ITEM_CREATED: _render_item_created,
    ACTION_PERSONNEL_ADDED: _render_personnel_added,
    ACTION_PERSONNEL_REMOVED: _render_personnel_removed,
}


def render_log_description(log: ProjectLog) -> str:
    renderer = RENDERERS.get(log.action)
    if renderer is None:
        return log.action
    return renderer(_load(log.before_value), _load(log.after_value))


def serialize_log(log: ProjectLog) -> dict:
    return {
        "id": log.id,
        "project_id": log.project_id,
        "project_day_id": log.project_day_id,
        "log_type": log.log_type,
        "action": log.action,
        "entity_type": log.entity_type,
        "entity_id": log.entity_id,
        "before_value": _load(log.before_value) or None,
        "after_value": _load(log.after_value) or None,
        "description": render_log_description(log),
        "recorded_by": log.recorded_by,
        "recorded_by_name": log.recorder.full_name if log.recorder else None,
        "created_at": log.created_at,
    }


def list_project_logs(db: Session, project_id: int) -> list[dict]:
    logs = (
        db.query(ProjectLog)
        .options(selectinload(ProjectLog.recorder))
        .filter(ProjectLog.project_id == project_id)
        .order_by(ProjectLog.created_at.desc(), ProjectLog.id.desc())
        .all()
    )
    return [serialize_log(log) for log in logs]

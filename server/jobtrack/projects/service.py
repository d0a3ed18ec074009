from datetime import datetime, timedelta
import logging
import math
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from jobtrack.activity_log.service import (
    ACTION_PROJECT_CREATED,
    ACTION_PROJECT_STATUS_CHANGED,
    ACTION_PROJECT_UPDATED,
    record_project_log,
)
from jobtrack.errors import ConflictError, NotFoundError
from jobtrack.models import PROJECT_STATUSES, Project, ProjectDay, ProjectItem


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("jo_number", "name", "description")
ACTIVE_STATUSES = ("upcoming", "ongoing")
RECENT_ACTIVITY_WINDOW = timedelta(days=7)


def _day_counts(db: Session, project_ids: list[int]) -> dict[int, int]:
    if not project_ids:
        return {}
    rows = (
        db.query(ProjectDay.project_id, func.count(ProjectDay.id))
        .filter(ProjectDay.project_id.in_(project_ids))
        .group_by(ProjectDay.project_id)
        .all()
    )
    return {project_id: int(count) for project_id, count in rows}


def serialize_project_row(project: Project, total_project_days: int = 0) -> dict:
    return {
        "id": project.id,
        "jo_number": project.jo_number,
        "name": project.name,
        "description": project.description,
        "status": project.status,
        "created_by": project.created_by,
        "created_by_name": project.creator.full_name if project.creator else None,
        "total_project_days": total_project_days,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }


def _ensure_unique_jo(db: Session, jo_number: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Project.id).filter(Project.jo_number == jo_number)
    if exclude_id is not None:
        query = query.filter(Project.id != exclude_id)
    if query.first():
        raise ConflictError("JO Number already exists")


def get_project(db: Session, project_id: int) -> Project:
    project = (
        db.query(Project)
        .options(selectinload(Project.creator))
        .filter(Project.id == project_id)
        .first()
    )
    if not project:
        raise NotFoundError("Project not found")
    return project


def get_project_with_day_count(db: Session, project_id: int) -> dict:
    project = get_project(db, project_id)
    return serialize_project_row(project, _day_counts(db, [project.id]).get(project.id, 0))


def list_projects(
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    query = db.query(Project)
    if status and status != "all":
        query = query.filter(Project.status == status)
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(Project.name).like(like),
                func.lower(Project.jo_number).like(like),
                func.lower(func.coalesce(Project.description, "")).like(like),
            )
        )

    total = query.count()
    projects = (
        query.options(selectinload(Project.creator))
        .order_by(Project.created_at.desc(), Project.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    counts = _day_counts(db, [project.id for project in projects])
    return {
        "projects": [serialize_project_row(project, counts.get(project.id, 0)) for project in projects],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }


def create_project(db: Session, payload: dict, actor_id: Optional[int] = None) -> Project:
    _ensure_unique_jo(db, payload["jo_number"])
    project = Project(
        jo_number=payload["jo_number"],
        name=payload["name"],
        description=payload.get("description"),
        status=payload.get("status") or "upcoming",
        created_by=actor_id,
    )
    db.add(project)
    db.flush()

    record_project_log(
        db,
        project_id=project.id,
        action=ACTION_PROJECT_CREATED,
        entity_type="project",
        entity_id=project.id,
        after={"jo_number": project.jo_number, "name": project.name, "status": project.status},
        actor_id=actor_id,
    )
    logger.info("Project created: project_id=%s jo_number=%s", project.id, project.jo_number)
    return project


def _set_status(db: Session, project: Project, status: str, actor_id: Optional[int]) -> None:
    previous = project.status
    project.status = status
    project.updated_at = datetime.utcnow()
    record_project_log(
        db,
        project_id=project.id,
        action=ACTION_PROJECT_STATUS_CHANGED,
        entity_type="project",
        entity_id=project.id,
        before={"status": previous},
        after={"status": status},
        actor_id=actor_id,
        log_type="status_change",
    )
    logger.info("Project status changed: project_id=%s from=%s to=%s", project.id, previous, status)


def update_project(db: Session, project_id: int, payload: dict, actor_id: Optional[int] = None) -> Project:
    project = get_project(db, project_id)

    new_jo = payload.get("jo_number")
    if new_jo and new_jo != project.jo_number:
        _ensure_unique_jo(db, new_jo, exclude_id=project.id)

    before: dict = {}
    after: dict = {}
    for field in EDITABLE_FIELDS:
        if field not in payload:
            continue
        value = payload[field]
        if field != "description" and value is None:
            continue
        if value != getattr(project, field):
            before[field] = getattr(project, field)
            after[field] = value
            setattr(project, field, value)

    if after:
        project.updated_at = datetime.utcnow()
        record_project_log(
            db,
            project_id=project.id,
            action=ACTION_PROJECT_UPDATED,
            entity_type="project",
            entity_id=project.id,
            before=before,
            after=after,
            actor_id=actor_id,
        )
        logger.info("Project updated: project_id=%s changes=%s", project.id, sorted(after))

    status = payload.get("status")
    if status and status != project.status:
        _set_status(db, project, status, actor_id)
    return project


def cancel_project(db: Session, project_id: int, actor_id: Optional[int] = None) -> Project:
    project = get_project(db, project_id)
    if project.status != "cancelled":
        _set_status(db, project, "cancelled", actor_id)
    return project


def project_stats(db: Session, now: Optional[datetime] = None) -> dict:
    """Status counts, projects created in the last week and stock tied up in active projects."""
    now = now or datetime.utcnow()
    counts = dict(db.query(Project.status, func.count(Project.id)).group_by(Project.status).all())
    recent = db.query(func.count(Project.id)).filter(Project.created_at >= now - RECENT_ACTIVITY_WINDOW).scalar()
    distinct_items, quantity = (
        db.query(
            func.count(func.distinct(ProjectItem.item_id)),
            func.coalesce(func.sum(ProjectItem.allocated_quantity), 0),
        )
        .join(ProjectDay, ProjectItem.project_day_id == ProjectDay.id)
        .join(Project, ProjectDay.project_id == Project.id)
        .filter(Project.status.in_(ACTIVE_STATUSES))
        .one()
    )

    stats = {f"{status}_projects": int(counts.get(status, 0)) for status in PROJECT_STATUSES}
    stats["total_projects"] = sum(stats.values())
    stats["recent_activity"] = int(recent or 0)
    stats["total_items_allocated"] = int(distinct_items)
    stats["total_quantity_allocated"] = int(quantity)
    return stats

"""Project day, item allocation and personnel assignment for job orders.

Every public function expects to run inside the caller's transaction and never
commits. Item rows are locked before their ``available_quantity`` is read so
concurrent allocations against the same item serialize.
"""
from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from jobtrack.activity_log.service import (
    ACTION_DAY_CREATED,
    ACTION_DAY_DELETED,
    ACTION_DAY_UPDATED,
    ACTION_ITEM_CREATED,
    ACTION_ITEM_REMOVED,
    ACTION_ITEM_UPDATED,
    ACTION_ITEMS_ADDED,
    ACTION_PERSONNEL_ADDED,
    ACTION_PERSONNEL_REMOVED,
    list_project_logs,
    record_project_log,
)
from jobtrack.errors import ConflictError, InsufficientQuantityError, NotFoundError, ValidationError
from jobtrack.inventory.service import (
    adjust_available_quantity,
    create_item,
    ensure_available,
    get_item_for_update,
    lock_items,
)
from jobtrack.models import (
    Item,
    Location,
    Personnel,
    Project,
    ProjectDay,
    ProjectItem,
    ProjectPersonnel,
    Role,
)


logger = logging.getLogger(__name__)


def project_day_display_status(project_date: date, today: Optional[date] = None) -> str:
    today = today or date.today()
    if project_date > today:
        return "scheduled"
    if project_date == today:
        return "ongoing"
    return "completed"


def serialize_project(project: Project) -> dict:
    return {
        "id": project.id,
        "jo_number": project.jo_number,
        "name": project.name,
        "description": project.description,
        "status": project.status,
        "created_by": project.created_by,
        "created_by_name": project.creator.full_name if project.creator else None,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }


def serialize_project_day(day: ProjectDay) -> dict:
    location = day.location
    return {
        "id": day.id,
        "project_id": day.project_id,
        "project_date": day.project_date,
        "location_id": day.location_id,
        "location_name": location.name if location else None,
        "location_type": location.type if location else None,
        "full_address": location.full_address if location else None,
        "display_status": project_day_display_status(day.project_date),
        "created_at": day.created_at,
        "updated_at": day.updated_at,
    }


def serialize_project_item(project_item: ProjectItem) -> dict:
    item = project_item.item
    return {
        "id": project_item.id,
        "project_day_id": project_item.project_day_id,
        "item_id": project_item.item_id,
        "allocated_quantity": project_item.allocated_quantity,
        "damaged_quantity": project_item.damaged_quantity,
        "lost_quantity": project_item.lost_quantity,
        "returned_quantity": project_item.returned_quantity,
        "status": project_item.status,
        "item_name": item.name,
        "item_type": item.type,
        "brand_name": item.brand.name if item.brand else None,
        "warehouse_location": item.warehouse_location.name if item.warehouse_location else None,
        "created_at": project_item.created_at,
        "updated_at": project_item.updated_at,
    }


def serialize_project_personnel(assignment: ProjectPersonnel) -> dict:
    return {
        "project_day_id": assignment.project_day_id,
        "personnel_id": assignment.personnel_id,
        "role_id": assignment.role_id,
        "personnel_name": assignment.personnel.name,
        "contact_number": assignment.personnel.contact_number,
        "role_name": assignment.role.name,
    }


def get_project_by_jo(db: Session, jo_number: str) -> Project:
    project = (
        db.query(Project)
        .options(selectinload(Project.creator))
        .filter(Project.jo_number == jo_number)
        .first()
    )
    if not project:
        raise NotFoundError("Project not found")
    return project


def _get_project_day(db: Session, day_id: int) -> ProjectDay:
    day = (
        db.query(ProjectDay)
        .options(selectinload(ProjectDay.location))
        .filter(ProjectDay.id == day_id)
        .first()
    )
    if not day:
        raise NotFoundError("Project day not found")
    return day


def _get_location(db: Session, location_id: Optional[int]) -> Optional[Location]:
    if location_id is None:
        return None
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise NotFoundError("Location not found")
    return location


def _resolve_project_days(db: Session, project: Project, day_ids: Iterable[int]) -> list[ProjectDay]:
    day_ids = list(dict.fromkeys(day_ids))
    if not day_ids:
        return []
    days = (
        db.query(ProjectDay)
        .filter(ProjectDay.id.in_(day_ids), ProjectDay.project_id == project.id)
        .all()
    )
    if len(days) != len(day_ids):
        raise ValidationError("One or more project days do not belong to this project")
    days_by_id = {day.id: day for day in days}
    return [days_by_id[day_id] for day_id in day_ids]


def get_project_detail(db: Session, jo_number: str) -> dict:
    project = get_project_by_jo(db, jo_number)
    days = (
        db.query(ProjectDay)
        .options(selectinload(ProjectDay.location))
        .filter(ProjectDay.project_id == project.id)
        .order_by(ProjectDay.project_date.asc())
        .all()
    )
    day_ids = [day.id for day in days]

    items_by_day: dict[int, list[dict]] = {day_id: [] for day_id in day_ids}
    personnel_by_day: dict[int, list[dict]] = {day_id: [] for day_id in day_ids}
    if day_ids:
        project_items = (
            db.query(ProjectItem)
            .join(Item, ProjectItem.item_id == Item.id)
            .options(
                selectinload(ProjectItem.item).selectinload(Item.brand),
                selectinload(ProjectItem.item).selectinload(Item.warehouse_location),
            )
            .filter(ProjectItem.project_day_id.in_(day_ids))
            .order_by(ProjectItem.project_day_id.asc(), Item.name.asc())
            .all()
        )
        for project_item in project_items:
            items_by_day[project_item.project_day_id].append(serialize_project_item(project_item))

        assignments = (
            db.query(ProjectPersonnel)
            .join(Role, ProjectPersonnel.role_id == Role.id)
            .join(Personnel, ProjectPersonnel.personnel_id == Personnel.id)
            .options(selectinload(ProjectPersonnel.personnel), selectinload(ProjectPersonnel.role))
            .filter(ProjectPersonnel.project_day_id.in_(day_ids))
            .order_by(ProjectPersonnel.project_day_id.asc(), Role.name.asc(), Personnel.name.asc())
            .all()
        )
        for assignment in assignments:
            personnel_by_day[assignment.project_day_id].append(serialize_project_personnel(assignment))

    project_days = []
    for day in days:
        payload = serialize_project_day(day)
        payload["items"] = items_by_day[day.id]
        payload["personnel"] = personnel_by_day[day.id]
        project_days.append(payload)

    return {
        "project": serialize_project(project),
        "project_days": project_days,
        "logs": list_project_logs(db, project.id),
    }


def list_assignable_items(db: Session, jo_number: str) -> list[Item]:
    get_project_by_jo(db, jo_number)
    return (
        db.query(Item)
        .options(selectinload(Item.brand), selectinload(Item.warehouse_location))
        .order_by(Item.type.asc(), Item.name.asc())
        .all()
    )


def list_personnel_and_roles(db: Session) -> dict:
    personnel = db.query(Personnel).filter(Personnel.is_active.is_(True)).order_by(Personnel.name.asc()).all()
    roles = db.query(Role).order_by(Role.name.asc()).all()
    return {"personnel": personnel, "roles": roles}


def list_active_locations(db: Session) -> list[Location]:
    return (
        db.query(Location)
        .filter(Location.is_active.is_(True))
        .order_by(Location.type.asc(), Location.name.asc())
        .all()
    )


# Project days

DUPLICATE_DAY_MESSAGE = "Project day already exists for this date"


def _day_date_taken(db: Session, project_id: int, project_date: date, exclude_day_id: Optional[int] = None) -> bool:
    query = db.query(ProjectDay.id).filter(ProjectDay.project_id == project_id, ProjectDay.project_date == project_date)
    if exclude_day_id is not None:
        query = query.filter(ProjectDay.id != exclude_day_id)
    return query.first() is not None


def _flush_project_day(db: Session) -> None:
    # Another request may insert the same date between the check and the flush.
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(DUPLICATE_DAY_MESSAGE)


def add_project_day(
    db: Session,
    *,
    project_id: int,
    project_date: date,
    location_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> ProjectDay:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    location = _get_location(db, location_id)

    if _day_date_taken(db, project_id, project_date):
        raise ConflictError(DUPLICATE_DAY_MESSAGE)

    day = ProjectDay(project_id=project_id, project_date=project_date, location_id=location_id)
    db.add(day)
    _flush_project_day(db)
    day.location = location

    record_project_log(
        db,
        project_id=project_id,
        project_day_id=day.id,
        action=ACTION_DAY_CREATED,
        entity_type="project_day",
        entity_id=day.id,
        after={"project_date": project_date, "location_name": location.name if location else None},
        actor_id=actor_id,
    )
    logger.info("Project day created: project_id=%s day_id=%s date=%s", project_id, day.id, project_date)
    return day


def update_project_day(
    db: Session,
    *,
    day_id: int,
    project_date: date,
    location_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> ProjectDay:
    day = _get_project_day(db, day_id)
    new_location = _get_location(db, location_id)
    old_date = day.project_date
    old_location = day.location

    if project_date != old_date and _day_date_taken(db, day.project_id, project_date, exclude_day_id=day.id):
        raise ConflictError(DUPLICATE_DAY_MESSAGE)

    before: dict = {}
    after: dict = {}
    if project_date != old_date:
        before["project_date"] = old_date
        after["project_date"] = project_date
    if location_id != day.location_id:
        before["location_name"] = old_location.name if old_location else None
        after["location_name"] = new_location.name if new_location else None

    day.project_date = project_date
    day.location_id = location_id
    day.location = new_location
    day.updated_at = datetime.utcnow()
    _flush_project_day(db)

    if after:
        record_project_log(
            db,
            project_id=day.project_id,
            project_day_id=day.id,
            action=ACTION_DAY_UPDATED,
            entity_type="project_day",
            entity_id=day.id,
            before=before,
            after=after,
            actor_id=actor_id,
        )
        logger.info("Project day updated: day_id=%s changes=%s", day.id, sorted(after))
    return day


def delete_project_day(db: Session, *, day_id: int, actor_id: Optional[int] = None) -> None:
    day = _get_project_day(db, day_id)

    item_count = db.query(func.count(ProjectItem.id)).filter(ProjectItem.project_day_id == day.id).scalar() or 0
    personnel_count = (
        db.query(func.count()).select_from(ProjectPersonnel).filter(ProjectPersonnel.project_day_id == day.id).scalar()
        or 0
    )
    if item_count > 0 or personnel_count > 0:
        raise ConflictError("Cannot delete project day with associated items or personnel")

    snapshot = {
        "project_date": day.project_date,
        "location_name": day.location.name if day.location else None,
    }
    project_id = day.project_id
    db.delete(day)

    record_project_log(
        db,
        project_id=project_id,
        project_day_id=day_id,
        action=ACTION_DAY_DELETED,
        entity_type="project_day",
        entity_id=day_id,
        before=snapshot,
        actor_id=actor_id,
    )
    logger.info("Project day deleted: project_id=%s day_id=%s", project_id, day_id)


# Item allocation


def _allocate_items(
    db: Session,
    *,
    project: Project,
    days: list[ProjectDay],
    assignments: list[dict],
    actor_id: Optional[int],
) -> list[dict]:
    results: list[dict] = []
    summaries: list[dict] = []
    items_by_id = lock_items(db, [assignment["item_id"] for assignment in assignments])

    for assignment in assignments:
        item_id = assignment["item_id"]
        quantity = int(assignment["allocated_quantity"])
        status = assignment.get("status") or "allocated"

        item = items_by_id.get(item_id)
        if item is None:
            results.append({"item_id": item_id, "status": "error", "error": "Item not found"})
            continue

        try:
            ensure_available(item, quantity * len(days))
        except InsufficientQuantityError as exc:
            results.append({"item_id": item_id, "status": "error", "error": exc.message})
            continue

        for day in days:
            project_item = (
                db.query(ProjectItem)
                .filter(ProjectItem.project_day_id == day.id, ProjectItem.item_id == item_id)
                .first()
            )
            if project_item is None:
                project_item = ProjectItem(
                    project_day_id=day.id,
                    item_id=item_id,
                    allocated_quantity=quantity,
                    damaged_quantity=0,
                    lost_quantity=0,
                    returned_quantity=0,
                    status=status,
                )
                db.add(project_item)
                db.flush()
                result_status = "added"
            else:
                project_item.allocated_quantity = int(project_item.allocated_quantity or 0) + quantity
                project_item.updated_at = datetime.utcnow()
                result_status = "updated"

            adjust_available_quantity(item, -quantity, reason=f"project_item:{project_item.id}")
            results.append(
                {
                    "id": project_item.id,
                    "project_day_id": day.id,
                    "item_id": item_id,
                    "allocated_quantity": project_item.allocated_quantity,
                    "status": result_status,
                }
            )

        summaries.append(
            {"item_id": item_id, "item_name": item.name, "allocated_quantity": quantity, "days": len(days)}
        )

    if summaries:
        record_project_log(
            db,
            project_id=project.id,
            project_day_id=days[0].id if len(days) == 1 else None,
            action=ACTION_ITEMS_ADDED,
            entity_type="project_item",
            after={"items": summaries, "project_day_ids": [day.id for day in days]},
            actor_id=actor_id,
        )
    logger.info(
        "Items allocated: project_id=%s days=%s allocated=%s errors=%s",
        project.id,
        len(days),
        len(summaries),
        sum(1 for result in results if result["status"] == "error"),
    )
    return results


def add_project_items(
    db: Session,
    *,
    jo_number: str,
    project_day_ids: list[int],
    assignments: list[dict],
    actor_id: Optional[int] = None,
) -> list[dict]:
    project = get_project_by_jo(db, jo_number)
    days = _resolve_project_days(db, project, project_day_ids)
    if not days:
        raise ValidationError("project_day_ids and item_assignments arrays are required")
    return _allocate_items(db, project=project, days=days, assignments=assignments, actor_id=actor_id)


def _get_project_item(db: Session, project_item_id: int) -> ProjectItem:
    project_item = (
        db.query(ProjectItem)
        .options(
            selectinload(ProjectItem.project_day),
            selectinload(ProjectItem.item).selectinload(Item.brand),
            selectinload(ProjectItem.item).selectinload(Item.warehouse_location),
        )
        .filter(ProjectItem.id == project_item_id)
        .first()
    )
    if not project_item:
        raise NotFoundError("Project item not found")
    return project_item


def update_project_item(
    db: Session,
    *,
    project_item_id: int,
    fields: dict,
    actor_id: Optional[int] = None,
) -> ProjectItem:
    project_item = _get_project_item(db, project_item_id)
    changes = {key: value for key, value in fields.items() if value is not None}

    old_allocated = int(project_item.allocated_quantity or 0)
    old_returned = int(project_item.returned_quantity or 0)
    new_allocated = int(changes.get("allocated_quantity", old_allocated))
    new_returned = int(changes.get("returned_quantity", old_returned))
    if new_returned > new_allocated:
        raise ValidationError("Returned quantity cannot exceed allocated quantity")

    item = get_item_for_update(db, project_item.item_id)
    allocated_diff = new_allocated - old_allocated
    returned_diff = new_returned - old_returned
    net_needed = allocated_diff - returned_diff
    if net_needed > 0:
        ensure_available(item, net_needed)

    before: dict = {}
    after: dict = {}
    for field, value in changes.items():
        current = getattr(project_item, field)
        if value != current:
            before[field] = current
            after[field] = value
            setattr(project_item, field, value)

    if net_needed:
        adjust_available_quantity(item, -net_needed, reason=f"project_item:{project_item.id}")

    if after:
        project_item.updated_at = datetime.utcnow()
        incident = any(after.get(field, 0) > before.get(field, 0) for field in ("damaged_quantity", "lost_quantity"))
        after["item_name"] = item.name
        record_project_log(
            db,
            project_id=project_item.project_day.project_id,
            project_day_id=project_item.project_day_id,
            action=ACTION_ITEM_UPDATED,
            entity_type="project_item",
            entity_id=project_item.id,
            before=before,
            after=after,
            actor_id=actor_id,
            log_type="incident" if incident else "activity",
        )
        logger.info("Project item updated: project_item_id=%s changes=%s", project_item.id, sorted(before))
    return project_item


def delete_project_item(db: Session, *, project_item_id: int, actor_id: Optional[int] = None) -> None:
    project_item = _get_project_item(db, project_item_id)
    item = get_item_for_update(db, project_item.item_id)
    day = project_item.project_day

    snapshot = {
        "item_id": item.id,
        "item_name": item.name,
        "allocated_quantity": project_item.allocated_quantity,
        "returned_quantity": project_item.returned_quantity,
        "project_date": day.project_date,
    }
    adjust_available_quantity(item, project_item.outstanding_quantity, reason=f"project_item:{project_item.id}")
    db.delete(project_item)

    record_project_log(
        db,
        project_id=day.project_id,
        project_day_id=day.id,
        action=ACTION_ITEM_REMOVED,
        entity_type="project_item",
        entity_id=project_item_id,
        before=snapshot,
        actor_id=actor_id,
    )
    logger.info("Project item removed: project_item_id=%s item_id=%s", project_item_id, item.id)


def create_item_and_assign(
    db: Session,
    *,
    jo_number: str,
    item_fields: dict,
    project_day_ids: Optional[list[int]] = None,
    apply_to_all_schedules: bool = False,
    allocated_quantity: int = 0,
    actor_id: Optional[int] = None,
) -> dict:
    project = get_project_by_jo(db, jo_number)

    if apply_to_all_schedules:
        days = (
            db.query(ProjectDay)
            .filter(ProjectDay.project_id == project.id)
            .order_by(ProjectDay.project_date.asc())
            .all()
        )
    else:
        days = _resolve_project_days(db, project, project_day_ids or [])

    if days and allocated_quantity > 0:
        stock = item_fields.get("available_quantity")
        if stock is None:
            stock = (
                int(item_fields.get("delivered_quantity") or 0)
                - int(item_fields.get("damaged_quantity") or 0)
                - int(item_fields.get("lost_quantity") or 0)
            )
        # The new item is only created when every selected day can be covered.
        if allocated_quantity * len(days) > stock:
            raise InsufficientQuantityError(int(stock), allocated_quantity * len(days))

    item = create_item(db, item_fields)
    record_project_log(
        db,
        project_id=project.id,
        action=ACTION_ITEM_CREATED,
        entity_type="item",
        entity_id=item.id,
        after={"name": item.name, "type": item.type, "available_quantity": item.available_quantity},
        actor_id=actor_id,
    )

    results: list[dict] = []
    if days and allocated_quantity > 0:
        results = _allocate_items(
            db,
            project=project,
            days=days,
            assignments=[{"item_id": item.id, "allocated_quantity": allocated_quantity, "status": "allocated"}],
            actor_id=actor_id,
        )
    return {
        "item": item,
        "assignments": results,
        "assigned_to_days": len(days),
        "apply_to_all_schedules": apply_to_all_schedules,
    }


# Personnel


def add_personnel(
    db: Session,
    *,
    jo_number: str,
    project_day_ids: list[int],
    assignments: list[dict],
    actor_id: Optional[int] = None,
) -> list[dict]:
    project = get_project_by_jo(db, jo_number)
    days = _resolve_project_days(db, project, project_day_ids)
    if not days:
        raise ValidationError("project_day_ids and personnel_assignments arrays are required")

    pairs = list(dict.fromkeys((entry["personnel_id"], entry["role_id"]) for entry in assignments))
    personnel_ids = {personnel_id for personnel_id, _ in pairs}
    role_ids = {role_id for _, role_id in pairs}
    personnel_by_id = {row.id: row for row in db.query(Personnel).filter(Personnel.id.in_(personnel_ids)).all()}
    roles_by_id = {row.id: row for row in db.query(Role).filter(Role.id.in_(role_ids)).all()}
    missing_personnel = sorted(personnel_ids - set(personnel_by_id))
    if missing_personnel:
        raise NotFoundError(f"Personnel not found: {', '.join(str(value) for value in missing_personnel)}")
    missing_roles = sorted(role_ids - set(roles_by_id))
    if missing_roles:
        raise NotFoundError(f"Roles not found: {', '.join(str(value) for value in missing_roles)}")

    results: list[dict] = []
    added_pairs: list[tuple[int, int]] = []
    for personnel_id, role_id in pairs:
        for day in days:
            existing = db.get(ProjectPersonnel, (day.id, personnel_id, role_id))
            if existing is not None:
                status = "already_exists"
            else:
                db.add(ProjectPersonnel(project_day_id=day.id, personnel_id=personnel_id, role_id=role_id))
                db.flush()
                status = "added"
                if (personnel_id, role_id) not in added_pairs:
                    added_pairs.append((personnel_id, role_id))
            results.append(
                {"project_day_id": day.id, "personnel_id": personnel_id, "role_id": role_id, "status": status}
            )

    if added_pairs:
        record_project_log(
            db,
            project_id=project.id,
            project_day_id=days[0].id if len(days) == 1 else None,
            action=ACTION_PERSONNEL_ADDED,
            entity_type="project_personnel",
            after={
                "assignments": [
                    {
                        "personnel_id": personnel_id,
                        "personnel_name": personnel_by_id[personnel_id].name,
                        "role_id": role_id,
                        "role_name": roles_by_id[role_id].name,
                    }
                    for personnel_id, role_id in added_pairs
                ],
                "project_day_ids": [day.id for day in days],
            },
            actor_id=actor_id,
        )
    logger.info("Personnel assigned: project_id=%s days=%s added_pairs=%s", project.id, len(days), len(added_pairs))
    return results


def remove_personnel(
    db: Session,
    *,
    jo_number: str,
    day_id: int,
    personnel_id: int,
    role_id: int,
    actor_id: Optional[int] = None,
) -> None:
    project = get_project_by_jo(db, jo_number)
    day = db.query(ProjectDay).filter(ProjectDay.id == day_id, ProjectDay.project_id == project.id).first()
    if not day:
        raise NotFoundError("Project day not found")

    assignment = db.get(ProjectPersonnel, (day_id, personnel_id, role_id))
    if assignment is None:
        raise NotFoundError("Personnel assignment not found")

    snapshot = {
        "personnel_id": personnel_id,
        "personnel_name": assignment.personnel.name,
        "role_id": role_id,
        "role_name": assignment.role.name,
        "project_date": day.project_date,
    }
    db.delete(assignment)

    record_project_log(
        db,
        project_id=project.id,
        project_day_id=day.id,
        action=ACTION_PERSONNEL_REMOVED,
        entity_type="project_personnel",
        entity_id=personnel_id,
        before=snapshot,
        actor_id=actor_id,
    )
    logger.info("Personnel removed: day_id=%s personnel_id=%s role_id=%s", day_id, personnel_id, role_id)

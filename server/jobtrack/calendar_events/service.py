"""Read-only calendar projection of scheduled project days."""

import calendar
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from jobtrack.errors import ValidationError
from jobtrack.models import Location, Project, ProjectDay


CALENDAR_STATUSES = ("upcoming", "ongoing", "completed")
UNSET_LOCATION = "Location TBD"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationError("Invalid year or month parameter")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def list_calendar_events(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[dict]:
    """One event per project, each carrying its days in date order.

    Cancelled projects are left out. A date filter also drops projects with no
    day in range; without one, unscheduled projects appear with no days.
    """
    query = (
        db.query(Project, ProjectDay, Location)
        .outerjoin(ProjectDay, ProjectDay.project_id == Project.id)
        .outerjoin(Location, ProjectDay.location_id == Location.id)
        .filter(Project.status.in_(CALENDAR_STATUSES))
    )
    if start_date:
        query = query.filter(ProjectDay.project_date >= start_date)
    if end_date:
        query = query.filter(ProjectDay.project_date <= end_date)
    rows = query.order_by(ProjectDay.project_date.asc(), Project.jo_number.asc(), ProjectDay.id.asc()).all()

    events: dict[int, dict] = {}
    for project, day, location in rows:
        event = events.setdefault(
            project.id,
            {
                "id": project.id,
                "jo_number": project.jo_number,
                "name": project.name,
                "description": project.description,
                "status": project.status,
                "project_days": [],
            },
        )
        if day is None:
            continue
        event["project_days"].append(
            {
                "id": day.id,
                "date": day.project_date,
                "location": location.name if location else UNSET_LOCATION,
                "location_id": day.location_id,
                "location_type": location.type if location else None,
                "full_address": location.full_address if location else None,
            }
        )
    return list(events.values())

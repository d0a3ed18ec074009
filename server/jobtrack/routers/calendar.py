from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from jobtrack.auth import get_current_user
from jobtrack.calendar_events import schemas
from jobtrack.calendar_events.service import list_calendar_events, month_bounds
from jobtrack.db import get_db
from jobtrack.schemas import ApiResponse, ok


router = APIRouter(prefix="/api/calendar", tags=["calendar"], dependencies=[Depends(get_current_user)])

EVENTS_MESSAGE = "Calendar events retrieved successfully"


@router.get("/events", response_model=ApiResponse[List[schemas.CalendarEvent]])
def list_events(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return ok(list_calendar_events(db, start_date=start_date, end_date=end_date), EVENTS_MESSAGE)


@router.get("/events/{year}/{month}", response_model=ApiResponse[List[schemas.CalendarEvent]])
def list_month_events(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(...),
    db: Session = Depends(get_db),
):
    start_date, end_date = month_bounds(year, month)
    return ok(list_calendar_events(db, start_date=start_date, end_date=end_date), EVENTS_MESSAGE)

import datetime
from typing import List, Optional

from pydantic import BaseModel

from jobtrack.projects.schemas import ProjectStatus


class CalendarDay(BaseModel):
    id: int
    date: datetime.date
    location: str
    location_id: Optional[int] = None
    location_type: Optional[str] = None
    full_address: Optional[str] = None


class CalendarEvent(BaseModel):
    id: int
    jo_number: str
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    project_days: List[CalendarDay]

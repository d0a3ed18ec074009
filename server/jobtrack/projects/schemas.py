from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


ProjectStatus = Literal["upcoming", "ongoing", "completed", "cancelled"]


class ProjectCreate(BaseModel):
    jo_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: ProjectStatus = "upcoming"


class ProjectUpdate(BaseModel):
    jo_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None

    @model_validator(mode="after")
    def validate_has_changes(self):
        if not self.model_fields_set:
            raise ValueError("Provide at least one field to update.")
        return self


class ProjectResponse(BaseModel):
    id: int
    jo_number: str
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    total_project_days: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse]
    pagination: Pagination


class ProjectStatsResponse(BaseModel):
    total_projects: int
    upcoming_projects: int
    ongoing_projects: int
    completed_projects: int
    cancelled_projects: int
    recent_activity: int
    total_items_allocated: int
    total_quantity_allocated: int

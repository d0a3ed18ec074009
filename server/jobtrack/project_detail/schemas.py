from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from jobtrack.inventory.schemas import InventoryItemResponse, ItemType


DayDisplayStatus = Literal["scheduled", "ongoing", "completed"]
AssignmentStatus = Literal["added", "updated", "error"]
PersonnelAssignmentStatus = Literal["added", "already_exists", "error"]


def _dedupe(values: List[int]) -> List[int]:
    return list(dict.fromkeys(values))


class ProjectDayCreate(BaseModel):
    project_id: int
    project_date: date
    location_id: Optional[int] = None


class ProjectDayUpdate(BaseModel):
    project_date: date
    location_id: Optional[int] = None


class ItemAssignment(BaseModel):
    item_id: int
    allocated_quantity: int = Field(..., gt=0)
    status: str = "allocated"


class ProjectItemsCreate(BaseModel):
    jo_number: str = Field(..., alias="joNumber", min_length=1)
    project_day_ids: List[int] = Field(..., min_length=1)
    item_assignments: List[ItemAssignment] = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("project_day_ids")
    @classmethod
    def unique_days(cls, value: List[int]) -> List[int]:
        return _dedupe(value)


class ProjectItemUpdate(BaseModel):
    allocated_quantity: Optional[int] = Field(default=None, ge=0)
    damaged_quantity: Optional[int] = Field(default=None, ge=0)
    lost_quantity: Optional[int] = Field(default=None, ge=0)
    returned_quantity: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None

    @model_validator(mode="after")
    def validate_has_changes(self):
        if not self.model_dump(exclude_none=True):
            raise ValueError("Provide at least one field to update.")
        return self


class PersonnelAssignment(BaseModel):
    personnel_id: int
    role_id: int


class PersonnelCreate(BaseModel):
    jo_number: str = Field(..., alias="joNumber", min_length=1)
    project_day_ids: List[int] = Field(..., min_length=1)
    personnel_assignments: List[PersonnelAssignment] = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("project_day_ids")
    @classmethod
    def unique_days(cls, value: List[int]) -> List[int]:
        return _dedupe(value)


class CreateItemAndAssign(BaseModel):
    jo_number: str = Field(..., alias="joNumber", min_length=1)
    type: ItemType
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    brand_id: Optional[int] = None
    delivered_quantity: int = Field(default=0, ge=0)
    damaged_quantity: int = Field(default=0, ge=0)
    lost_quantity: int = Field(default=0, ge=0)
    warehouse_location_id: Optional[int] = None
    project_day_ids: List[int] = Field(default_factory=list)
    apply_to_all_schedules: bool = False
    allocated_quantity: int = Field(default=0, ge=0)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("project_day_ids")
    @classmethod
    def unique_days(cls, value: List[int]) -> List[int]:
        return _dedupe(value)


class LocationResponse(BaseModel):
    id: int
    name: str
    type: str
    street: Optional[str] = None
    barangay: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    full_address: str

    model_config = ConfigDict(from_attributes=True)


class ProjectDayResponse(BaseModel):
    id: int
    project_id: int
    project_date: date
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    location_type: Optional[str] = None
    full_address: Optional[str] = None
    display_status: DayDisplayStatus
    created_at: datetime
    updated_at: datetime


class ProjectItemResponse(BaseModel):
    id: int
    project_day_id: int
    item_id: int
    allocated_quantity: int
    damaged_quantity: int
    lost_quantity: int
    returned_quantity: int
    status: str
    item_name: str
    item_type: str
    brand_name: Optional[str] = None
    warehouse_location: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProjectPersonnelResponse(BaseModel):
    project_day_id: int
    personnel_id: int
    role_id: int
    personnel_name: str
    contact_number: Optional[str] = None
    role_name: str


class ProjectDayDetailResponse(ProjectDayResponse):
    items: List[ProjectItemResponse] = Field(default_factory=list)
    personnel: List[ProjectPersonnelResponse] = Field(default_factory=list)


class ProjectSummaryResponse(BaseModel):
    id: int
    jo_number: str
    name: str
    description: Optional[str] = None
    status: str
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProjectLogResponse(BaseModel):
    id: int
    project_id: int
    project_day_id: Optional[int] = None
    log_type: str
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    before_value: Optional[dict[str, Any]] = None
    after_value: Optional[dict[str, Any]] = None
    description: str
    recorded_by: Optional[int] = None
    recorded_by_name: Optional[str] = None
    created_at: datetime


class ProjectDetailResponse(BaseModel):
    project: ProjectSummaryResponse
    project_days: List[ProjectDayDetailResponse]
    logs: List[ProjectLogResponse]


class ItemAssignmentResult(BaseModel):
    id: Optional[int] = None
    project_day_id: Optional[int] = None
    item_id: int
    allocated_quantity: Optional[int] = None
    status: AssignmentStatus
    error: Optional[str] = None


class PersonnelAssignmentResult(BaseModel):
    project_day_id: int
    personnel_id: int
    role_id: int
    status: PersonnelAssignmentStatus
    error: Optional[str] = None


class PersonnelResponse(BaseModel):
    id: int
    name: str
    contact_number: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class RoleResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class PersonnelAndRolesResponse(BaseModel):
    personnel: List[PersonnelResponse]
    roles: List[RoleResponse]


class CreateItemAndAssignResponse(BaseModel):
    item: InventoryItemResponse
    assignments: List[ItemAssignmentResult]
    assigned_to_days: int
    apply_to_all_schedules: bool

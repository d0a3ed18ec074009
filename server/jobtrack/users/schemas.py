from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from jobtrack.projects.schemas import Pagination


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    is_active: bool
    position_id: Optional[int] = None
    position_name: Optional[str] = None
    is_super_admin: bool
    permissions: dict[str, bool]
    last_login_at: Optional[datetime] = None


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    position_id: Optional[int] = None

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in ("first_name", "last_name", "email"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

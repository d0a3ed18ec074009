from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from jobtrack.auth import get_current_user
from jobtrack.db import get_db
from jobtrack.errors import NotFoundError
from jobtrack.models import Position
from jobtrack.schemas import ApiResponse, ok


router = APIRouter(prefix="/api/positions", tags=["positions"], dependencies=[Depends(get_current_user)])


class PositionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    can_manage_projects: bool
    can_manage_inventory: bool
    can_manage_users: bool
    is_super_admin: bool

    model_config = ConfigDict(from_attributes=True)


@router.get("", response_model=ApiResponse[List[PositionResponse]])
def list_positions(db: Session = Depends(get_db)):
    positions = db.query(Position).order_by(Position.name.asc()).all()
    return ok([PositionResponse.model_validate(position) for position in positions])


@router.get("/{position_id}", response_model=ApiResponse[PositionResponse])
def get_position(position_id: int, db: Session = Depends(get_db)):
    position = db.query(Position).filter(Position.id == position_id).first()
    if not position:
        raise NotFoundError("Position not found")
    return ok(PositionResponse.model_validate(position))

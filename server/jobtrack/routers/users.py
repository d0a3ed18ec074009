from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from jobtrack.auth import get_current_user, require_permission
from jobtrack.db import get_db
from jobtrack.models import User
from jobtrack.permission_keys import PermissionKey
from jobtrack.schemas import ApiResponse, ok
from jobtrack.users import schemas, service


router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(get_current_user)])

manage_users = require_permission(PermissionKey.MANAGE_USERS)


@router.get("", response_model=ApiResponse[schemas.UserListResponse], dependencies=[Depends(manage_users)])
def list_users(
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ok(service.list_users(db, search=search, page=page, limit=limit))


@router.get("/{user_id}", response_model=ApiResponse[schemas.UserResponse])
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ok(service.serialize_user(service.get_visible_user(db, user_id, current_user)))


@router.put("/{user_id}", response_model=ApiResponse[schemas.UserResponse])
def update_user(
    user_id: int,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = service.update_user(
        db,
        user_id=user_id,
        changes=payload.model_dump(exclude_unset=True),
        actor=current_user,
    )
    db.commit()
    return ok(service.serialize_user(service.get_user(db, user.id)), "User updated successfully")


@router.put("/{user_id}/deactivate", response_model=ApiResponse[schemas.UserResponse])
@router.delete("/{user_id}", response_model=ApiResponse[schemas.UserResponse])
def deactivate_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(manage_users)):
    user = service.set_user_active(db, user_id=user_id, active=False, actor=current_user)
    db.commit()
    return ok(service.serialize_user(service.get_user(db, user.id)), "User deactivated successfully")


@router.put("/{user_id}/activate", response_model=ApiResponse[schemas.UserResponse])
def activate_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(manage_users)):
    user = service.set_user_active(db, user_id=user_id, active=True, actor=current_user)
    db.commit()
    return ok(service.serialize_user(service.get_user(db, user.id)), "User activated successfully")

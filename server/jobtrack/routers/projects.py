from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from jobtrack.auth import get_current_user, require_permission
from jobtrack.db import get_db
from jobtrack.models import User
from jobtrack.permission_keys import PermissionKey
from jobtrack.projects import schemas, service
from jobtrack.schemas import ApiResponse, ok


router = APIRouter(prefix="/api/projects", tags=["projects"], dependencies=[Depends(get_current_user)])

manage_projects = require_permission(PermissionKey.MANAGE_PROJECTS)


@router.get("", response_model=ApiResponse[schemas.ProjectListResponse])
def list_projects(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ok(service.list_projects(db, status=status_filter, search=search, page=page, limit=limit))


@router.post("", response_model=ApiResponse[schemas.ProjectResponse], status_code=status.HTTP_201_CREATED)
def create_project(
    payload: schemas.ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    project = service.create_project(db, payload.model_dump(), actor_id=current_user.id)
    db.commit()
    return ok(service.get_project_with_day_count(db, project.id), "Project created successfully")


@router.get("/stats", response_model=ApiResponse[schemas.ProjectStatsResponse])
def get_project_stats(db: Session = Depends(get_db)):
    return ok(service.project_stats(db))


@router.get("/{project_id}", response_model=ApiResponse[schemas.ProjectResponse])
def get_project(project_id: int, db: Session = Depends(get_db)):
    return ok(service.get_project_with_day_count(db, project_id))


@router.put("/{project_id}", response_model=ApiResponse[schemas.ProjectResponse])
@router.patch("/{project_id}", response_model=ApiResponse[schemas.ProjectResponse])
def update_project(
    project_id: int,
    payload: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    service.update_project(db, project_id, payload.model_dump(exclude_unset=True), actor_id=current_user.id)
    db.commit()
    return ok(service.get_project_with_day_count(db, project_id), "Project updated successfully")


@router.delete("/{project_id}", response_model=ApiResponse[schemas.ProjectResponse])
def cancel_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    service.cancel_project(db, project_id, actor_id=current_user.id)
    db.commit()
    return ok(service.get_project_with_day_count(db, project_id), "Project cancelled successfully")

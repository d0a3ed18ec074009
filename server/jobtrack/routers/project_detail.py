from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from jobtrack.auth import get_current_user, require_permission
from jobtrack.db import get_db
from jobtrack.inventory.schemas import InventoryItemResponse, to_item_response
from jobtrack.models import User
from jobtrack.permission_keys import PermissionKey
from jobtrack.project_detail import schemas, service
from jobtrack.schemas import ApiResponse, ok


router = APIRouter(prefix="/api/project-detail", tags=["project-detail"], dependencies=[Depends(get_current_user)])

manage_projects = require_permission(PermissionKey.MANAGE_PROJECTS)


@router.get("/jo/{jo_number}", response_model=ApiResponse[schemas.ProjectDetailResponse])
def get_project_detail(jo_number: str, db: Session = Depends(get_db)):
    return ok(service.get_project_detail(db, jo_number))


@router.get("/items/{jo_number}", response_model=ApiResponse[List[InventoryItemResponse]])
def list_items_for_project(jo_number: str, db: Session = Depends(get_db)):
    items = service.list_assignable_items(db, jo_number)
    return ok([to_item_response(item) for item in items])


@router.get("/personnel", response_model=ApiResponse[schemas.PersonnelAndRolesResponse])
def list_personnel_and_roles(db: Session = Depends(get_db)):
    result = service.list_personnel_and_roles(db)
    return ok(
        schemas.PersonnelAndRolesResponse(
            personnel=[schemas.PersonnelResponse.model_validate(row) for row in result["personnel"]],
            roles=[schemas.RoleResponse.model_validate(row) for row in result["roles"]],
        )
    )


@router.get("/locations", response_model=ApiResponse[List[schemas.LocationResponse]])
def list_locations(db: Session = Depends(get_db)):
    locations = service.list_active_locations(db)
    return ok([schemas.LocationResponse.model_validate(location) for location in locations])


@router.post(
    "/project-days",
    response_model=ApiResponse[schemas.ProjectDayResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_project_day(
    payload: schemas.ProjectDayCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    day = service.add_project_day(
        db,
        project_id=payload.project_id,
        project_date=payload.project_date,
        location_id=payload.location_id,
        actor_id=current_user.id,
    )
    db.commit()
    return ok(service.serialize_project_day(day), "Project day created successfully")


@router.put("/project-days/{day_id}", response_model=ApiResponse[schemas.ProjectDayResponse])
def update_project_day(
    day_id: int,
    payload: schemas.ProjectDayUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    day = service.update_project_day(
        db,
        day_id=day_id,
        project_date=payload.project_date,
        location_id=payload.location_id,
        actor_id=current_user.id,
    )
    db.commit()
    return ok(service.serialize_project_day(day), "Project day updated successfully")


@router.delete("/project-days/{day_id}", response_model=ApiResponse[None])
def delete_project_day(
    day_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    service.delete_project_day(db, day_id=day_id, actor_id=current_user.id)
    db.commit()
    return ok(message="Project day deleted successfully")


@router.post(
    "/project-items",
    response_model=ApiResponse[List[schemas.ItemAssignmentResult]],
    status_code=status.HTTP_201_CREATED,
)
def add_project_items(
    payload: schemas.ProjectItemsCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    results = service.add_project_items(
        db,
        jo_number=payload.jo_number,
        project_day_ids=payload.project_day_ids,
        assignments=[assignment.model_dump() for assignment in payload.item_assignments],
        actor_id=current_user.id,
    )
    db.commit()
    return ok(results, "Items processed")


@router.put("/project-items/{project_item_id}", response_model=ApiResponse[schemas.ProjectItemResponse])
def update_project_item(
    project_item_id: int,
    payload: schemas.ProjectItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    project_item = service.update_project_item(
        db,
        project_item_id=project_item_id,
        fields=payload.model_dump(exclude_none=True),
        actor_id=current_user.id,
    )
    db.commit()
    return ok(service.serialize_project_item(project_item), "Project item updated successfully")


@router.delete("/project-items/{project_item_id}", response_model=ApiResponse[None])
def delete_project_item(
    project_item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    service.delete_project_item(db, project_item_id=project_item_id, actor_id=current_user.id)
    db.commit()
    return ok(message="Project item removed successfully")


@router.post(
    "/create-item-and-assign",
    response_model=ApiResponse[schemas.CreateItemAndAssignResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_item_and_assign(
    payload: schemas.CreateItemAndAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    item_fields = payload.model_dump(
        include={
            "type",
            "name",
            "description",
            "brand_id",
            "delivered_quantity",
            "damaged_quantity",
            "lost_quantity",
            "warehouse_location_id",
        }
    )
    result = service.create_item_and_assign(
        db,
        jo_number=payload.jo_number,
        item_fields=item_fields,
        project_day_ids=payload.project_day_ids,
        apply_to_all_schedules=payload.apply_to_all_schedules,
        allocated_quantity=payload.allocated_quantity,
        actor_id=current_user.id,
    )
    db.commit()
    result["item"] = to_item_response(result["item"])
    return ok(result, "Item created successfully")


@router.post(
    "/personnel",
    response_model=ApiResponse[List[schemas.PersonnelAssignmentResult]],
    status_code=status.HTTP_201_CREATED,
)
def add_personnel(
    payload: schemas.PersonnelCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    results = service.add_personnel(
        db,
        jo_number=payload.jo_number,
        project_day_ids=payload.project_day_ids,
        assignments=[assignment.model_dump() for assignment in payload.personnel_assignments],
        actor_id=current_user.id,
    )
    db.commit()
    return ok(results, "Personnel processed")


@router.delete(
    "/personnel/{jo_number}/{day_id}/{personnel_id}/{role_id}",
    response_model=ApiResponse[None],
)
def remove_personnel(
    jo_number: str,
    day_id: int,
    personnel_id: int,
    role_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_projects),
):
    service.remove_personnel(
        db,
        jo_number=jo_number,
        day_id=day_id,
        personnel_id=personnel_id,
        role_id=role_id,
        actor_id=current_user.id,
    )
    db.commit()
    return ok(message="Personnel removed successfully")

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from jobtrack.auth import get_current_user, require_permission
from jobtrack.db import get_db
from jobtrack.inventory import schemas
from jobtrack.inventory.service import (
    create_item,
    delete_item,
    get_item,
    inventory_stats,
    list_brands,
    list_items,
    list_storage_locations,
    reconcile_item_availability,
    update_item,
)
from jobtrack.permission_keys import PermissionKey
from jobtrack.schemas import ApiResponse, ok


router = APIRouter(prefix="/api/inventory", tags=["inventory"], dependencies=[Depends(get_current_user)])

manage_inventory = require_permission(PermissionKey.MANAGE_INVENTORY)


@router.get("", response_model=ApiResponse[List[schemas.InventoryItemResponse]])
def list_inventory_items(
    search: Optional[str] = None,
    type: Optional[schemas.ItemType] = None,
    db: Session = Depends(get_db),
):
    items = list_items(db, search=search, item_type=type)
    return ok([schemas.to_item_response(item) for item in items])


@router.post(
    "",
    response_model=ApiResponse[schemas.InventoryItemResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(manage_inventory)],
)
def create_inventory_item(payload: schemas.InventoryItemCreate, db: Session = Depends(get_db)):
    item = create_item(db, payload.model_dump())
    db.commit()
    return ok(schemas.to_item_response(get_item(db, item.id)), "Item created successfully")


@router.get("/stats", response_model=ApiResponse[schemas.InventoryStatsResponse])
def get_inventory_stats(db: Session = Depends(get_db)):
    return ok(inventory_stats(db))


@router.get("/brands", response_model=ApiResponse[List[schemas.BrandResponse]])
def list_inventory_brands(db: Session = Depends(get_db)):
    return ok([schemas.BrandResponse.model_validate(brand) for brand in list_brands(db)])


@router.get("/locations", response_model=ApiResponse[List[schemas.StorageLocationResponse]])
def list_inventory_locations(db: Session = Depends(get_db)):
    return ok([schemas.StorageLocationResponse.model_validate(location) for location in list_storage_locations(db)])


@router.get("/{item_id}", response_model=ApiResponse[schemas.InventoryItemResponse])
def get_inventory_item(item_id: int, db: Session = Depends(get_db)):
    return ok(schemas.to_item_response(get_item(db, item_id)))


@router.put(
    "/{item_id}",
    response_model=ApiResponse[schemas.InventoryItemResponse],
    dependencies=[Depends(manage_inventory)],
)
def update_inventory_item(item_id: int, payload: schemas.InventoryItemUpdate, db: Session = Depends(get_db)):
    update_item(db, item_id, payload.model_dump(exclude_unset=True))
    db.commit()
    return ok(schemas.to_item_response(get_item(db, item_id)), "Inventory item updated successfully")


@router.delete(
    "/{item_id}",
    response_model=ApiResponse[schemas.InventoryItemResponse],
    dependencies=[Depends(manage_inventory)],
)
def delete_inventory_item(item_id: int, db: Session = Depends(get_db)):
    deleted = schemas.to_item_response(get_item(db, item_id))
    delete_item(db, item_id)
    db.commit()
    return ok(deleted, "Inventory item deleted successfully")


@router.get("/{item_id}/reconciliation", response_model=ApiResponse[schemas.ReconciliationResponse])
def check_item_availability(item_id: int, db: Session = Depends(get_db)):
    return ok(reconcile_item_availability(db, item_id))


@router.post(
    "/{item_id}/reconciliation",
    response_model=ApiResponse[schemas.ReconciliationResponse],
    dependencies=[Depends(manage_inventory)],
)
def apply_item_reconciliation(item_id: int, db: Session = Depends(get_db)):
    result = reconcile_item_availability(db, item_id, apply=True)
    db.commit()
    return ok(result, "Availability reconciled" if result["corrected"] else "No drift detected")

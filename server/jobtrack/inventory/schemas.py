from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


ItemType = Literal["product", "material"]


class InventoryItemResponse(BaseModel):
    id: int
    type: ItemType
    name: str
    description: Optional[str] = None
    brand_id: Optional[int] = None
    brand_name: Optional[str] = None
    delivered_quantity: int
    damaged_quantity: int
    lost_quantity: int
    available_quantity: int
    warehouse_location_id: Optional[int] = None
    warehouse_location: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InventoryItemCreate(BaseModel):
    type: ItemType
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    brand_id: Optional[int] = None
    delivered_quantity: int = Field(default=0, ge=0)
    damaged_quantity: int = Field(default=0, ge=0)
    lost_quantity: int = Field(default=0, ge=0)
    available_quantity: Optional[int] = Field(default=None, ge=0)
    warehouse_location_id: Optional[int] = None
    status: Optional[str] = None


class InventoryItemUpdate(BaseModel):
    type: Optional[ItemType] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    brand_id: Optional[int] = None
    delivered_quantity: Optional[int] = Field(default=None, ge=0)
    damaged_quantity: Optional[int] = Field(default=None, ge=0)
    lost_quantity: Optional[int] = Field(default=None, ge=0)
    warehouse_location_id: Optional[int] = None
    status: Optional[str] = None

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in ("type", "name", "delivered_quantity", "damaged_quantity", "lost_quantity"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class BrandResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class StorageLocationResponse(BaseModel):
    id: int
    name: str
    city: Optional[str] = None
    province: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class InventoryQuantities(BaseModel):
    total_delivered: int
    total_available: int
    total_damaged: int
    total_lost: int


class InventoryStatsResponse(BaseModel):
    total_items: int
    type_counts: dict[str, int]
    quantities: InventoryQuantities


class ReconciliationResponse(BaseModel):
    item_id: int
    stored_available_quantity: int
    expected_available_quantity: int
    drift: int
    corrected: bool


def to_item_response(item) -> InventoryItemResponse:
    return InventoryItemResponse(
        id=item.id,
        type=item.type,
        name=item.name,
        description=item.description,
        brand_id=item.brand_id,
        brand_name=item.brand.name if item.brand else None,
        delivered_quantity=item.delivered_quantity or 0,
        damaged_quantity=item.damaged_quantity or 0,
        lost_quantity=item.lost_quantity or 0,
        available_quantity=item.available_quantity or 0,
        warehouse_location_id=item.warehouse_location_id,
        warehouse_location=item.warehouse_location.name if item.warehouse_location else None,
        status=item.status,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )

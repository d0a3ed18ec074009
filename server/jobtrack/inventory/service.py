from datetime import datetime
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from jobtrack.errors import ConflictError, InsufficientQuantityError, NotFoundError, ValidationError
from jobtrack.models import Brand, Item, Location, ProjectItem


logger = logging.getLogger(__name__)

STOCK_FIELDS = ("delivered_quantity", "damaged_quantity", "lost_quantity")
STORAGE_LOCATION_TYPES = ("warehouse", "office")


def _stock(values: dict) -> int:
    return (
        int(values["delivered_quantity"] or 0)
        - int(values["damaged_quantity"] or 0)
        - int(values["lost_quantity"] or 0)
    )


def get_item(db: Session, item_id: int) -> Item:
    item = (
        db.query(Item)
        .options(selectinload(Item.brand), selectinload(Item.warehouse_location))
        .filter(Item.id == item_id)
        .first()
    )
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


def get_item_for_update(db: Session, item_id: int) -> Item | None:
    """Row-locked read that refreshes any copy already in the session.

    Callers must hold the lock until commit.
    """
    return db.query(Item).filter(Item.id == item_id).with_for_update().populate_existing().first()


def lock_items(db: Session, item_ids) -> dict[int, Item]:
    """Lock item rows in id order so concurrent batches acquire locks consistently."""
    ids = sorted(set(item_ids))
    if not ids:
        return {}
    rows = (
        db.query(Item)
        .filter(Item.id.in_(ids))
        .order_by(Item.id.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {row.id: row for row in rows}


def adjust_available_quantity(item: Item, qty_delta: int, *, reason: str) -> Item:
    previous = int(item.available_quantity or 0)
    item.available_quantity = previous + qty_delta
    item.updated_at = datetime.utcnow()
    logger.debug(
        "Available quantity adjusted: item_id=%s previous=%s delta=%s new=%s reason=%s",
        item.id,
        previous,
        qty_delta,
        item.available_quantity,
        reason,
    )
    return item


def ensure_available(item: Item, needed: int) -> None:
    available = int(item.available_quantity or 0)
    if available < needed:
        logger.warning("Allocation rejected: item_id=%s available=%s needed=%s", item.id, available, needed)
        raise InsufficientQuantityError(available, needed)


def list_items(db: Session, search: str | None = None, item_type: str | None = None) -> list[Item]:
    query = db.query(Item).options(selectinload(Item.brand), selectinload(Item.warehouse_location))
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(func.lower(Item.name).like(like))
    if item_type:
        query = query.filter(Item.type == item_type)
    return query.order_by(Item.type.asc(), Item.name.asc()).all()


def _check_references(db: Session, brand_id: int | None, location_id: int | None) -> None:
    if brand_id is not None and not db.query(Brand.id).filter(Brand.id == brand_id).scalar():
        raise NotFoundError("Brand not found")
    if location_id is not None and not db.query(Location.id).filter(Location.id == location_id).scalar():
        raise NotFoundError("Warehouse location not found")


def create_item(db: Session, payload: dict) -> Item:
    brand_id = payload.get("brand_id")
    location_id = payload.get("warehouse_location_id")
    _check_references(db, brand_id, location_id)

    delivered = int(payload.get("delivered_quantity") or 0)
    damaged = int(payload.get("damaged_quantity") or 0)
    lost = int(payload.get("lost_quantity") or 0)
    available = payload.get("available_quantity")
    if available is None:
        available = delivered - damaged - lost

    item = Item(
        type=payload["type"],
        brand_id=brand_id,
        name=payload["name"],
        description=payload.get("description"),
        delivered_quantity=delivered,
        damaged_quantity=damaged,
        lost_quantity=lost,
        available_quantity=int(available),
        warehouse_location_id=location_id,
        status=payload.get("status"),
    )
    db.add(item)
    db.flush()
    logger.info("Inventory item created: item_id=%s name=%s available=%s", item.id, item.name, item.available_quantity)
    return item


def get_outstanding_allocation(db: Session, item_id: int) -> int:
    outstanding = (
        db.query(func.coalesce(func.sum(ProjectItem.allocated_quantity - ProjectItem.returned_quantity), 0))
        .filter(ProjectItem.item_id == item_id)
        .scalar()
    )
    return int(outstanding or 0)


def compute_expected_available_qty(db: Session, item: Item) -> int:
    stock = _stock({field: getattr(item, field) for field in STOCK_FIELDS})
    return stock - get_outstanding_allocation(db, item.id)


def reconcile_item_availability(db: Session, item_id: int, *, apply: bool = False) -> dict:
    item = get_item_for_update(db, item_id) if apply else db.query(Item).filter(Item.id == item_id).first()
    if not item:
        raise NotFoundError("Inventory item not found")

    stored = int(item.available_quantity or 0)
    expected = compute_expected_available_qty(db, item)
    drift = stored - expected
    if drift and apply:
        adjust_available_quantity(item, -drift, reason="reconciliation")
        logger.info("Item availability reconciled: item_id=%s stored=%s expected=%s", item.id, stored, expected)
    return {
        "item_id": item.id,
        "stored_available_quantity": stored,
        "expected_available_quantity": expected,
        "drift": drift,
        "corrected": bool(drift and apply),
    }


def update_item(db: Session, item_id: int, changes: dict) -> Item:
    """Apply a partial edit. Stock edits shift available_quantity by the same amount."""
    if not changes:
        raise ValidationError("No valid fields to update")
    item = get_item_for_update(db, item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    _check_references(db, changes.get("brand_id"), changes.get("warehouse_location_id"))

    current = {field: getattr(item, field) for field in STOCK_FIELDS}
    edited = {field: changes.get(field, current[field]) for field in STOCK_FIELDS}
    stock_delta = _stock(edited) - _stock(current)
    if int(item.available_quantity or 0) + stock_delta < 0:
        outstanding = get_outstanding_allocation(db, item.id)
        raise ValidationError(f"Stock cannot drop below the {outstanding} units allocated to projects")

    for field, value in changes.items():
        setattr(item, field, value)
    if stock_delta:
        adjust_available_quantity(item, stock_delta, reason="stock_edit")
    item.updated_at = datetime.utcnow()
    logger.info("Inventory item updated: item_id=%s fields=%s", item.id, sorted(changes))
    return item


def delete_item(db: Session, item_id: int) -> None:
    item = get_item_for_update(db, item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    allocations = db.query(func.count(ProjectItem.id)).filter(ProjectItem.item_id == item_id).scalar()
    if allocations:
        raise ConflictError("Cannot delete an item that is allocated to project days")
    name = item.name
    db.delete(item)
    db.flush()
    logger.info("Inventory item deleted: item_id=%s name=%s", item_id, name)


def list_brands(db: Session) -> list[Brand]:
    return db.query(Brand).order_by(Brand.name.asc()).all()


def list_storage_locations(db: Session) -> list[Location]:
    return (
        db.query(Location)
        .filter(Location.type.in_(STORAGE_LOCATION_TYPES), Location.is_active.is_(True))
        .order_by(Location.name.asc())
        .all()
    )


def inventory_stats(db: Session) -> dict:
    type_counts = dict(db.query(Item.type, func.count(Item.id)).group_by(Item.type).all())
    totals = db.query(
        func.count(Item.id),
        func.coalesce(func.sum(Item.delivered_quantity), 0),
        func.coalesce(func.sum(Item.available_quantity), 0),
        func.coalesce(func.sum(Item.damaged_quantity), 0),
        func.coalesce(func.sum(Item.lost_quantity), 0),
    ).one()
    return {
        "total_items": int(totals[0]),
        "type_counts": {key: int(value) for key, value in type_counts.items()},
        "quantities": {
            "total_delivered": int(totals[1]),
            "total_available": int(totals[2]),
            "total_damaged": int(totals[3]),
            "total_lost": int(totals[4]),
        },
    }

"""Inventory management endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cafeteria.core.security import require_roles
from cafeteria.db.session import get_db, get_read_db
from cafeteria.models.user import User
from cafeteria.schemas.inventory import (
    AvailabilityCheckRequest,
    AvailabilityResult,
    BulkInventoryUpdate,
    InventoryHistoryRead,
    InventoryRead,
    InventoryUpdate,
    RestockRequest,
    TrackingToggle,
)
from cafeteria.services.inventory_service import (
    bulk_update_inventory,
    check_bulk_availability,
    get_inventory_by_location,
    get_inventory_history,
    get_low_stock_items,
    restock_inventory,
    toggle_inventory_tracking,
    update_inventory,
)

router: APIRouter = APIRouter()
inventory_manager = require_roles("KITCHEN", "ADMIN")


@router.post("/check-availability", response_model=list[AvailabilityResult])
def check_availability(payload: AvailabilityCheckRequest, db: Session = Depends(get_read_db)) -> list[AvailabilityResult]:
    results = check_bulk_availability(db, [item.model_dump() for item in payload.items])
    return [
        AvailabilityResult(
            menu_item_id=result.menu_item_id,
            location_id=result.location_id,
            available=result.available,
            current_stock=result.current_stock,
            requested=result.requested,
        )
        for result in results
    ]


@router.get("/locations/{location_id}", response_model=list[InventoryRead])
def list_location_inventory(
    location_id: int,
    db: Session = Depends(get_read_db),
    _: User = Depends(inventory_manager),
) -> list[InventoryRead]:
    return [InventoryRead.model_validate(row) for row in get_inventory_by_location(db, location_id)]


@router.get("/locations/{location_id}/low-stock", response_model=list[InventoryRead])
def list_low_stock(
    location_id: int,
    db: Session = Depends(get_read_db),
    _: User = Depends(inventory_manager),
) -> list[InventoryRead]:
    return [InventoryRead.model_validate(row) for row in get_low_stock_items(db, location_id)]


@router.get("/history", response_model=list[InventoryHistoryRead])
def history(
    location_id: int | None = Query(default=None),
    menu_item_id: int | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_read_db),
    _: User = Depends(inventory_manager),
) -> list[InventoryHistoryRead]:
    rows = get_inventory_history(db, location_id=location_id, menu_item_id=menu_item_id, limit=limit)
    return [InventoryHistoryRead.model_validate(row) for row in rows]


@router.put("/{menu_item_id}/{location_id}", response_model=InventoryRead)
def adjust_inventory(
    menu_item_id: int,
    location_id: int,
    payload: InventoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(inventory_manager),
) -> InventoryRead:
    inventory = update_inventory(
        db,
        menu_item_id,
        location_id,
        stock_quantity=payload.stock_quantity,
        low_stock_threshold=payload.low_stock_threshold,
        change_type=payload.change_type,
        user_id=current_user.id,
        reason=payload.reason,
    )
    return InventoryRead.model_validate(inventory)


@router.post("/{menu_item_id}/{location_id}/restock", response_model=InventoryRead)
def restock(
    menu_item_id: int,
    location_id: int,
    payload: RestockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(inventory_manager),
) -> InventoryRead:
    inventory = restock_inventory(
        db, menu_item_id, location_id, payload.quantity, user_id=current_user.id, reason=payload.reason
    )
    return InventoryRead.model_validate(inventory)


@router.post("/bulk", response_model=list[InventoryRead])
def bulk_update(
    payload: BulkInventoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(inventory_manager),
) -> list[InventoryRead]:
    rows = bulk_update_inventory(
        db,
        [row.model_dump() for row in payload.updates],
        user_id=current_user.id,
        reason=payload.reason,
    )
    return [InventoryRead.model_validate(row) for row in rows]


@router.patch("/menu-items/{menu_item_id}/tracking")
def set_tracking(
    menu_item_id: int,
    payload: TrackingToggle,
    db: Session = Depends(get_db),
    _: User = Depends(inventory_manager),
) -> dict[str, int | bool]:
    menu_item = toggle_inventory_tracking(db, menu_item_id, payload.track_inventory)
    return {"menu_item_id": menu_item.id, "track_inventory": menu_item.track_inventory}

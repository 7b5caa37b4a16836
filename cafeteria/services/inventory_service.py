"""Per-location stock ledger: availability checks, deductions and adjustments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from cafeteria.core.config import settings
from cafeteria.core.exceptions import CafeteriaError, InventoryDeductionConflictError, InventoryNotFoundError
from cafeteria.models.inventory import INVENTORY_CHANGE_TYPES, Inventory, InventoryHistory
from cafeteria.models.location import Location, MenuItemLocation
from cafeteria.models.menu import MenuItem

logger = logging.getLogger(__name__)

UNLIMITED_STOCK: int = -1


@dataclass(frozen=True)
class AvailabilityResult:
    menu_item_id: int
    location_id: int
    available: bool
    current_stock: int
    requested: int


def get_inventory(db: Session, menu_item_id: int, location_id: int, *, for_update: bool = False) -> Inventory | None:
    statement = select(Inventory).where(
        Inventory.menu_item_id == menu_item_id,
        Inventory.location_id == location_id,
    )
    if for_update:
        statement = statement.with_for_update().execution_options(populate_existing=True)
    return db.scalar(statement)


def check_availability(db: Session, menu_item_id: int, location_id: int, requested: int) -> AvailabilityResult:
    """Check whether a location can serve the requested quantity."""
    menu_item: MenuItem | None = db.get(MenuItem, menu_item_id)
    if menu_item is None or not menu_item.track_inventory:
        return AvailabilityResult(menu_item_id, location_id, True, UNLIMITED_STOCK, requested)

    inventory = get_inventory(db, menu_item_id, location_id)
    if inventory is None:
        return AvailabilityResult(menu_item_id, location_id, False, 0, requested)

    available = inventory.is_available and inventory.stock_quantity >= requested
    return AvailabilityResult(menu_item_id, location_id, available, inventory.stock_quantity, requested)


def check_bulk_availability(db: Session, items: list[dict[str, int]]) -> list[AvailabilityResult]:
    """Check a cart; each entry has ``menu_item_id``, ``location_id`` and ``quantity``."""
    return [
        check_availability(db, item["menu_item_id"], item["location_id"], item["quantity"])
        for item in items
    ]


def deduct_inventory(
    db: Session,
    menu_item_id: int,
    location_id: int,
    quantity: int,
    order_id: int,
) -> Inventory | None:
    """Deduct stock for an order inside the caller's transaction.

    Does not commit. Returns None for untracked items. Raises
    InventoryDeductionConflictError when the locked row no longer covers the
    quantity, which aborts the enclosing order transaction.
    """
    menu_item: MenuItem | None = db.get(MenuItem, menu_item_id)
    if menu_item is None or not menu_item.track_inventory:
        return None

    inventory = get_inventory(db, menu_item_id, location_id, for_update=True)
    current_stock: int = inventory.stock_quantity if inventory is not None else 0
    if inventory is None or current_stock < quantity:
        raise InventoryDeductionConflictError(
            [{"menu_item_id": menu_item_id, "name": menu_item.name, "current_stock": current_stock, "requested": quantity}]
        )

    previous_qty: int = inventory.stock_quantity
    new_qty: int = previous_qty - quantity
    inventory.stock_quantity = new_qty
    inventory.is_available = new_qty > 0

    db.add(
        InventoryHistory(
            inventory_id=inventory.id,
            change_type="ORDER",
            quantity=-quantity,
            previous_qty=previous_qty,
            new_qty=new_qty,
            order_id=order_id,
        )
    )
    db.flush()
    logger.debug(
        "[INVENTORY] order_id=%s deducted %s of menu_item_id=%s at location_id=%s, remaining=%s",
        order_id,
        quantity,
        menu_item_id,
        location_id,
        new_qty,
    )
    return inventory


def _require_menu_item_and_location(db: Session, menu_item_id: int, location_id: int) -> None:
    if db.get(MenuItem, menu_item_id) is None:
        raise InventoryNotFoundError(f"Menu item {menu_item_id} not found")
    if db.get(Location, location_id) is None:
        raise InventoryNotFoundError(f"Location {location_id} not found")


def update_inventory(
    db: Session,
    menu_item_id: int,
    location_id: int,
    *,
    stock_quantity: int | None = None,
    low_stock_threshold: int | None = None,
    change_type: str = "ADJUSTMENT",
    user_id: int | None = None,
    reason: str | None = None,
    commit: bool = True,
) -> Inventory:
    """Apply a manual change, creating the inventory row on first use."""
    if change_type not in INVENTORY_CHANGE_TYPES:
        raise CafeteriaError(f"Invalid change type: {change_type}")
    if stock_quantity is not None and stock_quantity < 0:
        raise CafeteriaError("Stock quantity cannot be negative")
    _require_menu_item_and_location(db, menu_item_id, location_id)

    inventory = get_inventory(db, menu_item_id, location_id, for_update=True)
    if inventory is None:
        inventory = Inventory(
            menu_item_id=menu_item_id,
            location_id=location_id,
            stock_quantity=0,
            low_stock_threshold=settings.default_low_stock_threshold,
            is_available=False,
        )
        db.add(inventory)
        db.flush()

    previous_qty: int = inventory.stock_quantity
    new_qty: int = previous_qty if stock_quantity is None else stock_quantity

    if low_stock_threshold is not None:
        inventory.low_stock_threshold = low_stock_threshold
    if stock_quantity is not None:
        inventory.stock_quantity = new_qty
        inventory.is_available = new_qty > 0
    if change_type == "RESTOCK":
        inventory.last_restocked_at = datetime.now(timezone.utc)

    if new_qty != previous_qty:
        db.add(
            InventoryHistory(
                inventory_id=inventory.id,
                change_type=change_type,
                quantity=new_qty - previous_qty,
                previous_qty=previous_qty,
                new_qty=new_qty,
                user_id=user_id,
                reason=reason,
            )
        )

    if commit:
        db.commit()
        db.refresh(inventory)
    else:
        db.flush()
    logger.info(
        "[INVENTORY] %s menu_item_id=%s location_id=%s %s -> %s by user_id=%s",
        change_type,
        menu_item_id,
        location_id,
        previous_qty,
        new_qty,
        user_id,
    )
    return inventory


def restock_inventory(
    db: Session,
    menu_item_id: int,
    location_id: int,
    quantity: int,
    *,
    user_id: int | None = None,
    reason: str | None = None,
) -> Inventory:
    """Add delivered stock on top of the current level."""
    if quantity < 1:
        raise CafeteriaError("Restock quantity must be positive")
    current = get_inventory(db, menu_item_id, location_id, for_update=True)
    current_qty: int = current.stock_quantity if current is not None else 0
    return update_inventory(
        db,
        menu_item_id,
        location_id,
        stock_quantity=current_qty + quantity,
        change_type="RESTOCK",
        user_id=user_id,
        reason=reason,
    )


def bulk_update_inventory(
    db: Session,
    updates: list[dict[str, int]],
    *,
    user_id: int | None = None,
    reason: str | None = None,
) -> list[Inventory]:
    """Set absolute stock levels for several rows in one transaction."""
    try:
        results = [
            update_inventory(
                db,
                row["menu_item_id"],
                row["location_id"],
                stock_quantity=row["stock_quantity"],
                change_type="ADJUSTMENT",
                user_id=user_id,
                reason=reason,
                commit=False,
            )
            for row in updates
        ]
        db.commit()
    except Exception:
        db.rollback()
        raise
    for inventory in results:
        db.refresh(inventory)
    return results


def initialize_inventory_for_menu_item(db: Session, menu_item_id: int) -> list[Inventory]:
    """Create zero-stock rows at every linked location for a tracked item."""
    menu_item: MenuItem | None = db.get(MenuItem, menu_item_id)
    if menu_item is None or not menu_item.track_inventory:
        return []

    location_ids: list[int] = list(
        db.scalars(select(MenuItemLocation.location_id).where(MenuItemLocation.menu_item_id == menu_item_id)).all()
    )
    inventories: list[Inventory] = []
    for location_id in location_ids:
        inventory = get_inventory(db, menu_item_id, location_id)
        if inventory is None:
            inventory = Inventory(
                menu_item_id=menu_item_id,
                location_id=location_id,
                stock_quantity=0,
                low_stock_threshold=settings.default_low_stock_threshold,
                is_available=False,
            )
            db.add(inventory)
        inventories.append(inventory)

    db.commit()
    return inventories


def toggle_inventory_tracking(db: Session, menu_item_id: int, track_inventory: bool) -> MenuItem:
    menu_item: MenuItem | None = db.get(MenuItem, menu_item_id)
    if menu_item is None:
        raise InventoryNotFoundError(f"Menu item {menu_item_id} not found")
    menu_item.track_inventory = track_inventory
    db.commit()

    if track_inventory:
        initialize_inventory_for_menu_item(db, menu_item_id)
    db.refresh(menu_item)
    return menu_item


def get_inventory_by_location(db: Session, location_id: int) -> list[Inventory]:
    """Tracked inventory for a location, lowest stock first."""
    return list(
        db.scalars(
            select(Inventory)
            .join(MenuItem, Inventory.menu_item_id == MenuItem.id)
            .where(Inventory.location_id == location_id, MenuItem.track_inventory.is_(True))
            .order_by(Inventory.stock_quantity.asc(), MenuItem.name.asc())
        ).all()
    )


def get_low_stock_items(db: Session, location_id: int) -> list[Inventory]:
    return list(
        db.scalars(
            select(Inventory)
            .join(MenuItem, Inventory.menu_item_id == MenuItem.id)
            .where(
                Inventory.location_id == location_id,
                MenuItem.track_inventory.is_(True),
                or_(Inventory.stock_quantity <= Inventory.low_stock_threshold, Inventory.is_available.is_(False)),
            )
            .order_by(Inventory.stock_quantity.asc())
        ).all()
    )


def get_inventory_history(
    db: Session,
    *,
    location_id: int | None = None,
    menu_item_id: int | None = None,
    limit: int = 100,
) -> list[InventoryHistory]:
    statement = select(InventoryHistory).join(Inventory, InventoryHistory.inventory_id == Inventory.id)
    if location_id is not None:
        statement = statement.where(Inventory.location_id == location_id)
    if menu_item_id is not None:
        statement = statement.where(Inventory.menu_item_id == menu_item_id)
    return list(db.scalars(statement.order_by(InventoryHistory.created_at.desc(), InventoryHistory.id.desc()).limit(limit)).all())

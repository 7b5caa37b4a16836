"""Inventory API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AvailabilityCheckItem(BaseModel):
    menu_item_id: int
    location_id: int
    quantity: int = Field(ge=1)


class AvailabilityCheckRequest(BaseModel):
    items: list[AvailabilityCheckItem] = Field(min_length=1)


class AvailabilityResult(BaseModel):
    menu_item_id: int
    location_id: int
    available: bool
    current_stock: int
    requested: int


class InventoryUpdate(BaseModel):
    """Manual adjustment; omitted fields are left unchanged."""

    stock_quantity: int | None = Field(default=None, ge=0)
    low_stock_threshold: int | None = Field(default=None, ge=0)
    change_type: str = "ADJUSTMENT"
    reason: str | None = None


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)
    reason: str | None = None


class BulkInventoryRow(BaseModel):
    menu_item_id: int
    location_id: int
    stock_quantity: int = Field(ge=0)


class BulkInventoryUpdate(BaseModel):
    updates: list[BulkInventoryRow] = Field(min_length=1)
    reason: str | None = None


class TrackingToggle(BaseModel):
    track_inventory: bool


class InventoryRead(BaseModel):
    id: int
    menu_item_id: int
    location_id: int
    stock_quantity: int
    low_stock_threshold: int
    is_available: bool
    is_low_stock: bool
    last_restocked_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class InventoryHistoryRead(BaseModel):
    id: int
    inventory_id: int
    change_type: str
    quantity: int
    previous_qty: int
    new_qty: int
    user_id: int | None
    order_id: int | None
    reason: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

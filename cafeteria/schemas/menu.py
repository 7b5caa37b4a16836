"""Menu API schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from cafeteria.schemas.settings import OrderingWindowRead


class VariationOptionRead(BaseModel):
    id: int
    name: str
    price_modifier: Decimal
    is_default: bool

    model_config = ConfigDict(from_attributes=True)


class VariationGroupRead(BaseModel):
    id: int
    name: str
    type: str
    is_required: bool
    options: list[VariationOptionRead]

    model_config = ConfigDict(from_attributes=True)


class MenuItemRead(BaseModel):
    id: int
    name: str
    description: str | None
    category: str
    price: Decimal
    image_url: str | None
    track_inventory: bool
    variation_groups: list[VariationGroupRead]

    model_config = ConfigDict(from_attributes=True)


class MenuResponse(BaseModel):
    location_id: int
    items: list[MenuItemRead]
    ordering_window: OrderingWindowRead

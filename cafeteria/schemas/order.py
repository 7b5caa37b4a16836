"""Order API schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN: str = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SelectedVariationPayload(BaseModel):
    """Options chosen within one variation group."""

    group_id: int
    option_ids: list[int] = Field(default_factory=list)


class OrderItemPayload(BaseModel):
    """Single cart line."""

    menu_item_id: int
    quantity: int = Field(default=1, ge=1)
    selected_variations: list[SelectedVariationPayload] | None = None
    customizations: Any = None
    special_requests: str | None = None


class OrderCreate(BaseModel):
    """Cart submitted for checkout."""

    location_id: int | None = None
    items: list[OrderItemPayload] = Field(min_length=1)
    delivery_notes: str | None = None


class GuestInfo(BaseModel):
    """Identity of a customer checking out without an account."""

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)


class GuestOrderCreate(OrderCreate):
    """Guest cart plus identity and checkout token."""

    guest_info: GuestInfo
    guest_token: str


class GuestCheckoutTokenResponse(BaseModel):
    token: str
    expires_in_seconds: int


class OrderItemRead(BaseModel):
    """Serialized order item with its purchase-time snapshot."""

    id: int
    menu_item_id: int | None
    quantity: int
    price_at_purchase: Decimal
    selected_variations: dict[str, Any] | None
    customizations: dict[str, Any] | None
    fulfillment_status: str
    item_name: str | None
    item_description: str | None
    item_category: str | None
    item_image_url: str | None
    item_base_price: Decimal | None

    model_config = ConfigDict(from_attributes=True)


class OrderRead(BaseModel):
    """Serialized order."""

    id: int
    order_number: str
    user_id: int | None
    guest_email: str | None
    guest_first_name: str | None
    guest_last_name: str | None
    location_id: int | None
    total_amount: Decimal
    payment_status: str
    fulfillment_status: str
    payment_intent_id: str | None
    order_date: date
    special_requests: str | None
    customer_full_name: str | None
    customer_email: str | None
    customer_department: str | None
    location_name: str | None
    location_address: str | None
    location_phone: str | None
    created_at: datetime
    items: list[OrderItemRead]

    model_config = ConfigDict(from_attributes=True)


class OrderCreateResponse(BaseModel):
    order: OrderRead
    client_secret: str
    access_token: str | None = None


class OrderPageResponse(BaseModel):
    orders: list[OrderRead]
    total: int
    page: int
    total_pages: int


class FulfillmentStatusUpdate(BaseModel):
    status: str

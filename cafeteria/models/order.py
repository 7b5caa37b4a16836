"""Order models with snapshot fields for historical integrity."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafeteria.db.base import Base

PAYMENT_STATUSES = ("PENDING", "COMPLETED", "FAILED", "REFUNDED")
FULFILLMENT_STATUSES = ("PLACED", "PARTIALLY_FULFILLED", "FULFILLED")
ITEM_FULFILLMENT_STATUSES = ("PLACED", "FULFILLED")


class Order(Base):
    """One checkout attempt by a registered user or a guest."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    guest_first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    guest_last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location_id: Mapped[int | None] = mapped_column(ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    payment_status: Mapped[str] = mapped_column(Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False, default="PENDING")
    fulfillment_status: Mapped[str] = mapped_column(
        Enum(*FULFILLMENT_STATUSES, name="fulfillment_status"), nullable=False, default="PLACED"
    )
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    order_date: Mapped[date] = mapped_column(Date, nullable=False, default=lambda: datetime.now(timezone.utc).date())
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)

    customer_full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User | None"] = relationship(back_populates="orders")
    location: Mapped["Location | None"] = relationship()
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    __table_args__ = (
        Index("uq_orders_order_number", "order_number", unique=True),
        Index("ix_orders_order_date_payment_status", "order_date", "payment_status"),
        CheckConstraint(
            "(user_id IS NOT NULL AND guest_email IS NULL AND guest_first_name IS NULL AND guest_last_name IS NULL)"
            " OR (user_id IS NULL AND guest_email IS NOT NULL AND guest_first_name IS NOT NULL AND guest_last_name IS NOT NULL)",
            name="ck_orders_single_owner",
        ),
    )

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


class OrderItem(Base):
    """Line item frozen at purchase time."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id: Mapped[int | None] = mapped_column(ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_purchase: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    selected_variations: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    customizations: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    fulfillment_status: Mapped[str] = mapped_column(
        Enum(*ITEM_FULFILLMENT_STATUSES, name="item_fulfillment_status"), nullable=False, default="PLACED"
    )

    item_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    item_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    item_category: Mapped[str | None] = mapped_column(String(32), nullable=True)
    item_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    item_base_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    order: Mapped[Order] = relationship(back_populates="items")
    menu_item: Mapped["MenuItem | None"] = relationship()

    __table_args__ = (CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),)

    @property
    def subtotal(self) -> Decimal:
        return self.price_at_purchase * self.quantity

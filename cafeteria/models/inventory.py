"""Inventory ledger models."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafeteria.db.base import Base

INVENTORY_CHANGE_TYPES = ("RESTOCK", "ORDER", "ADJUSTMENT", "WASTE")


class Inventory(Base):
    """Stock level for one menu item at one location."""

    __tablename__ = "inventories"
    __table_args__ = (
        UniqueConstraint("menu_item_id", "location_id", name="uq_inventory_menu_item_location"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_restocked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
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

    menu_item: Mapped["MenuItem"] = relationship()
    location: Mapped["Location"] = relationship()
    history: Mapped[list["InventoryHistory"]] = relationship(back_populates="inventory", cascade="all, delete-orphan")

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold


class InventoryHistory(Base):
    """Immutable audit row written for every stock mutation."""

    __tablename__ = "inventory_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True)
    change_type: Mapped[str] = mapped_column(Enum(*INVENTORY_CHANGE_TYPES, name="inventory_change_type"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    new_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    order_id: Mapped[int | None] = mapped_column(ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    inventory: Mapped[Inventory] = relationship(back_populates="history")

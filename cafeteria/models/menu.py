"""Menu ORM models."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafeteria.db.base import Base

MENU_CATEGORIES = ("BREAKFAST", "LUNCH", "SNACK", "DRINK", "DESSERT")
VARIATION_GROUP_TYPES = ("SINGLE_SELECT", "MULTI_SELECT")


class MenuItem(Base):
    """Dish or drink offered by the cafeteria."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(Enum(*MENU_CATEGORIES, name="menu_category"), nullable=False, default="LUNCH")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    track_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    variation_groups: Mapped[list["VariationGroup"]] = relationship(
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="VariationGroup.display_order",
    )
    location_links: Mapped[list["MenuItemLocation"]] = relationship(back_populates="menu_item", cascade="all, delete-orphan")


class VariationGroup(Base):
    """Named set of options for a menu item, e.g. size or extras."""

    __tablename__ = "variation_groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(Enum(*VARIATION_GROUP_TYPES, name="variation_group_type"), nullable=False, default="SINGLE_SELECT")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    menu_item: Mapped[MenuItem] = relationship(back_populates="variation_groups")
    options: Mapped[list["VariationOption"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="VariationOption.display_order",
    )


class VariationOption(Base):
    """Selectable option with a price modifier."""

    __tablename__ = "variation_options"

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("variation_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price_modifier: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    group: Mapped[VariationGroup] = relationship(back_populates="options")

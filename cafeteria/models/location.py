"""Location-related ORM models."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafeteria.db.base import Base


class Location(Base):
    """Cafeteria outlet where orders are collected."""

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    menu_item_links: Mapped[list["MenuItemLocation"]] = relationship(back_populates="location", cascade="all, delete-orphan")


class MenuItemLocation(Base):
    """Availability mapping between a menu item and a location."""

    __tablename__ = "menu_item_locations"
    __table_args__ = (
        UniqueConstraint("menu_item_id", "location_id", name="uq_menu_item_location"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    location: Mapped[Location] = relationship(back_populates="menu_item_links")
    menu_item: Mapped["MenuItem"] = relationship(back_populates="location_links")

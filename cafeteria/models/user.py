"""User ORM model."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafeteria.db.base import Base

USER_ROLES = ("STAFF", "KITCHEN", "FINANCE", "ADMIN")
MANAGEMENT_ROLES = frozenset({"KITCHEN", "FINANCE", "ADMIN"})


def normalize_user_role(role: str | None) -> str:
    """Return canonical upper-case role or raise for unknown values."""
    normalized = str(role or "").strip().upper()
    if normalized not in USER_ROLES:
        raise ValueError(f"Unknown role: {role}")
    return normalized


class User(Base):
    """Registered account: cafeteria staff member or management user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(Enum(*USER_ROLES, name="user_role"), nullable=False, default="STAFF")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    orders: Mapped[list["Order"]] = relationship(back_populates="user")

"""User service operations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cafeteria.core.config import settings
from cafeteria.core.security import get_password_hash, verify_password
from cafeteria.models.user import User, normalize_user_role

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()).limit(1))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def create_user(
    db: Session,
    email: str,
    password: str,
    role: str = "STAFF",
    full_name: str | None = None,
    department: str | None = None,
) -> User:
    user = User(
        email=email.strip().lower(),
        password_hash=get_password_hash(password),
        role=normalize_user_role(role),
        full_name=full_name,
        department=department,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def ensure_default_admin(db: Session) -> bool:
    """Ensure the bootstrap admin account exists and is active.

    Returns:
        bool: True when the account existed before this call.
    """
    existing_admin = get_user_by_email(db, settings.default_admin_email)
    if existing_admin is not None:
        if not existing_admin.is_active:
            existing_admin.is_active = True
            db.commit()
            logger.info("[BOOTSTRAP] Admin exists but was inactive; account re-activated.")
        return True

    create_user(db, settings.default_admin_email, settings.default_admin_password, role="ADMIN", full_name="Administrator")
    logger.warning(
        "[SECURITY] Default admin account created: %s. Change default password immediately.",
        settings.default_admin_email,
    )
    return False

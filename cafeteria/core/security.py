"""Security utilities: password hashing, access tokens and guest order tokens."""

import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from cafeteria.core.config import settings
from cafeteria.core.exceptions import InvalidGuestTokenError
from cafeteria.db.session import get_read_db
from cafeteria.models.user import MANAGEMENT_ROLES, User
from cafeteria.services.settings_service import get_system_config

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme: HTTPBearer = HTTPBearer(auto_error=True)
optional_bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)

GUEST_ORDER_TOKEN_TYPE: str = "guest_order_access"
GUEST_CHECKOUT_TOKEN_TYPE: str = "guest_checkout"


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def _encode(payload: dict[str, Any], expires_in: timedelta) -> str:
    to_encode: dict[str, Any] = payload.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_in})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token from payload data."""
    return _encode(data, timedelta(minutes=settings.jwt_expire_minutes))


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token payload."""
    try:
        payload: dict[str, Any] = _decode(token)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc

    return payload


def generate_guest_order_token(order_id: int) -> str:
    """Sign a long-lived token that lets a guest reopen their order."""
    return _encode(
        {"order_id": order_id, "type": GUEST_ORDER_TOKEN_TYPE},
        timedelta(days=settings.guest_order_token_expire_days),
    )


def verify_guest_order_token(token: str) -> int:
    """Return the order id bound to a guest order token."""
    try:
        payload: dict[str, Any] = _decode(token)
    except ExpiredSignatureError as exc:
        raise InvalidGuestTokenError("Order access link has expired") from exc
    except JWTError as exc:
        raise InvalidGuestTokenError("Invalid order access link") from exc

    if payload.get("type") != GUEST_ORDER_TOKEN_TYPE:
        raise InvalidGuestTokenError("Invalid token type")
    try:
        return int(payload["order_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidGuestTokenError("Invalid order access link") from exc


def issue_guest_checkout_token() -> str:
    """Short-lived nonce token the checkout page must echo back."""
    return _encode(
        {"nonce": secrets.token_hex(16), "type": GUEST_CHECKOUT_TOKEN_TYPE},
        timedelta(seconds=settings.guest_checkout_token_ttl_seconds),
    )


def verify_guest_checkout_token(token: str | None) -> bool:
    if not token:
        return False
    try:
        payload: dict[str, Any] = _decode(token)
    except JWTError:
        return False
    return payload.get("type") == GUEST_CHECKOUT_TOKEN_TYPE and bool(payload.get("nonce"))


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_read_db),
) -> User:
    """Resolve the authenticated user from the Authorization header."""
    payload: dict[str, Any] = verify_token(credentials.credentials)
    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        )

    try:
        parsed_user_id: int = int(user_id)
    except (TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        ) from exc

    user: User | None = db.get(User, parsed_user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


def validate_role_domain(db: Session, user: User) -> None:
    """Management roles must use the configured email domain when one is set."""
    if user.role not in MANAGEMENT_ROLES:
        return
    allowed_domain: str = get_system_config(db).restricted_role_domain
    if allowed_domain and not user.email.lower().endswith(allowed_domain.lower()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Email domain is not authorized for the {user.role} role. Required domain: {allowed_domain}",
        )


def require_roles(*roles: str) -> Callable[..., User]:
    """Build a dependency that admits only the given roles."""
    allowed = {role.upper() for role in roles}

    def _checker(current_user: User = Depends(get_current_user), db: Session = Depends(get_read_db)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        validate_role_domain(db, current_user)
        return current_user

    return _checker


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer_scheme),
    db: Session = Depends(get_read_db),
) -> User | None:
    """Like ``get_current_user`` but returns None for anonymous callers."""
    if credentials is None:
        return None
    return get_current_user(credentials=credentials, db=db)

"""Schema exports."""

from cafeteria.schemas.auth import AuthUserResponse, LoginRequest, TokenResponse
from cafeteria.schemas.order import GuestInfo, GuestOrderCreate, OrderCreate, OrderItemPayload, OrderRead

__all__ = [
    "AuthUserResponse",
    "LoginRequest",
    "TokenResponse",
    "GuestInfo",
    "GuestOrderCreate",
    "OrderCreate",
    "OrderItemPayload",
    "OrderRead",
]

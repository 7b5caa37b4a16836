"""Order payment and fulfillment status transition helpers."""

from __future__ import annotations

from cafeteria.core.exceptions import InvalidStatusTransitionError
from cafeteria.models.order import ITEM_FULFILLMENT_STATUSES, Order

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"COMPLETED", "FAILED"},
    "FAILED": {"COMPLETED"},
    "COMPLETED": {"REFUNDED"},
    "REFUNDED": set(),
}


def can_transition(current: str, new: str) -> bool:
    """Return whether payment status can move from current to new."""
    return new in PAYMENT_TRANSITIONS.get(current, set())


def set_payment_status(order: Order, new_status: str) -> bool:
    """Move payment status forward; returns False when already in ``new_status``."""
    if order.payment_status == new_status:
        return False
    if not can_transition(order.payment_status, new_status):
        raise InvalidStatusTransitionError(order.payment_status, new_status)
    order.payment_status = new_status
    return True


def derive_fulfillment_status(item_statuses: list[str]) -> str:
    """Order-level status from its items: none, some or all fulfilled."""
    fulfilled = sum(1 for status in item_statuses if status == "FULFILLED")
    if item_statuses and fulfilled == len(item_statuses):
        return "FULFILLED"
    if fulfilled > 0:
        return "PARTIALLY_FULFILLED"
    return "PLACED"


def validate_item_status(status: str) -> str:
    normalized = str(status or "").strip().upper()
    if normalized not in ITEM_FULFILLMENT_STATUSES:
        raise InvalidStatusTransitionError("?", normalized or status)
    return normalized

"""Domain errors raised by services and rendered by the API error handler."""

from __future__ import annotations

from typing import Any


class CafeteriaError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 400

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def code(self) -> str:
        return type(self).__name__

    def extra(self) -> dict[str, Any]:
        """Additional JSON fields for the error response."""
        return {}


class OrderingWindowClosedError(CafeteriaError):
    """Raised when an order is submitted outside the configured ordering window."""


class InvalidOrUnavailableItemsError(CafeteriaError):
    """Raised when a cart references unknown or inactive menu items."""

    def __init__(self, missing_ids: list[int]) -> None:
        super().__init__("One or more menu items are invalid or unavailable")
        self.missing_ids = missing_ids

    def extra(self) -> dict[str, Any]:
        return {"menu_item_ids": self.missing_ids}


class ItemsNotAvailableAtLocationError(CafeteriaError):
    """Raised when requested items are not served at the chosen location."""

    def __init__(self, item_names: list[str]) -> None:
        super().__init__(f"The following items are not available at this location: {', '.join(item_names)}")
        self.item_names = item_names

    def extra(self) -> dict[str, Any]:
        return {"items": self.item_names}


class InsufficientInventoryError(CafeteriaError):
    """Raised when tracked stock cannot cover the requested quantities."""

    status_code = 409

    def __init__(self, shortages: list[dict[str, Any]], message: str | None = None) -> None:
        details = "; ".join(
            f"{entry['name']}: requested {entry['requested']}, available {entry['current_stock']}" for entry in shortages
        )
        super().__init__(message or f"Insufficient stock: {details}")
        self.shortages = shortages

    def extra(self) -> dict[str, Any]:
        return {"shortages": self.shortages}


class InventoryDeductionConflictError(InsufficientInventoryError):
    """Raised inside the order transaction when stock was consumed concurrently."""


class PaymentIntentCreationFailedError(CafeteriaError):
    """Raised when the payment provider refuses to create an intent."""

    status_code = 502

    def __init__(self, message: str = "Failed to create payment intent") -> None:
        super().__init__(message)


class OrderNumberCollisionExhaustedError(CafeteriaError):
    """Raised when order-number retries are used up."""

    status_code = 503

    def __init__(self) -> None:
        super().__init__("Could not complete order, please try again")


class CustomerNotFoundError(CafeteriaError):
    status_code = 404

    def __init__(self) -> None:
        super().__init__("User not found")


class GuestEmailRegisteredError(CafeteriaError):
    """Raised when a guest checkout uses an email that belongs to an account."""

    status_code = 409

    def __init__(self) -> None:
        super().__init__("An account with this email already exists. Please sign in to continue.")


class OrderNotFoundError(CafeteriaError):
    status_code = 404

    def __init__(self, message: str = "Order not found") -> None:
        super().__init__(message)


class OrderAccessDeniedError(CafeteriaError):
    status_code = 403


class InvalidGuestTokenError(CafeteriaError):
    status_code = 401


class PaymentNotCompletedError(CafeteriaError):
    def __init__(self) -> None:
        super().__init__("Payment has not been completed")


class InvalidWebhookError(CafeteriaError):
    def __init__(self, message: str = "Invalid webhook signature") -> None:
        super().__init__(message)


class InvalidStatusTransitionError(CafeteriaError):
    def __init__(self, current: str, new: str) -> None:
        super().__init__(f"Cannot change status from {current} to {new}")
        self.current = current
        self.new = new


class ConfigValidationError(CafeteriaError):
    """Raised when admin-supplied settings are malformed."""


class InventoryNotFoundError(CafeteriaError):
    status_code = 404


class InvalidRefundAmountError(CafeteriaError):
    def __init__(self, message: str = "Refund amount must be greater than zero and at most the order total") -> None:
        super().__init__(message)


class RefundFailedError(CafeteriaError):
    """Raised when the payment provider rejects a refund."""

    status_code = 502

    def __init__(self, message: str = "Failed to create refund") -> None:
        super().__init__(message)

"""Payment provider gateway and order payment-status handling."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import stripe
from sqlalchemy import select
from sqlalchemy.orm import Session

from cafeteria.core.config import settings
from cafeteria.core.exceptions import (
    InvalidRefundAmountError,
    InvalidStatusTransitionError,
    InvalidWebhookError,
    OrderAccessDeniedError,
    OrderNotFoundError,
    PaymentIntentCreationFailedError,
    PaymentNotCompletedError,
    RefundFailedError,
)
from cafeteria.models.order import Order
from cafeteria.services.order_status import can_transition, set_payment_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntentInfo:
    id: str
    client_secret: str | None
    status: str = "requires_payment_method"
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookEvent:
    type: str
    intent: PaymentIntentInfo | None


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentGateway(ABC):
    """Interface to the card-payment processor."""

    @abstractmethod
    def create_payment_intent(
        self,
        *,
        amount: Decimal,
        customer_email: str,
        currency: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntentInfo:
        ...

    @abstractmethod
    def update_payment_intent_metadata(self, payment_intent_id: str, order_id: int) -> None:
        ...

    @abstractmethod
    def cancel_payment_intent(self, payment_intent_id: str) -> None:
        ...

    @abstractmethod
    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        ...

    @abstractmethod
    def create_refund(self, payment_intent_id: str, amount: Decimal | None = None) -> str:
        ...

    @abstractmethod
    def construct_webhook_event(self, payload: bytes, signature: str) -> WebhookEvent:
        ...


def _intent_info(intent: Any) -> PaymentIntentInfo:
    metadata = intent.get("metadata") or {}
    return PaymentIntentInfo(
        id=intent["id"],
        client_secret=intent.get("client_secret"),
        status=intent.get("status", ""),
        metadata={key: str(value) for key, value in dict(metadata).items()},
    )


class StripePaymentGateway(PaymentGateway):
    """Stripe implementation; every call passes the API key explicitly."""

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None, currency: str | None = None) -> None:
        self.api_key = api_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.currency = currency or settings.stripe_currency

    def create_payment_intent(
        self,
        *,
        amount: Decimal,
        customer_email: str,
        currency: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntentInfo:
        if not self.api_key:
            raise PaymentIntentCreationFailedError("Payments are not configured")
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_cents(amount),
                currency=currency or self.currency,
                receipt_email=customer_email,
                metadata={"order_id": "", "customer_email": customer_email, **(metadata or {})},
                automatic_payment_methods={"enabled": True},
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            logger.error("[PAYMENT] Stripe payment intent creation failed: %s", exc)
            raise PaymentIntentCreationFailedError() from exc
        return _intent_info(intent)

    def update_payment_intent_metadata(self, payment_intent_id: str, order_id: int) -> None:
        try:
            stripe.PaymentIntent.modify(payment_intent_id, metadata={"order_id": str(order_id)}, api_key=self.api_key)
        except stripe.StripeError:
            logger.exception("[PAYMENT] Failed to update payment intent %s metadata", payment_intent_id)
            return
        logger.info("[PAYMENT] Updated payment intent %s with order_id %s", payment_intent_id, order_id)

    def cancel_payment_intent(self, payment_intent_id: str) -> None:
        try:
            stripe.PaymentIntent.cancel(payment_intent_id, api_key=self.api_key)
        except stripe.StripeError:
            logger.exception("[PAYMENT] Failed to cancel payment intent %s", payment_intent_id)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        return _intent_info(stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key))

    def create_refund(self, payment_intent_id: str, amount: Decimal | None = None) -> str:
        params: dict[str, Any] = {"payment_intent": payment_intent_id, "api_key": self.api_key}
        if amount is not None:
            params["amount"] = to_cents(amount)
        try:
            refund = stripe.Refund.create(**params)
        except stripe.StripeError as exc:
            logger.error("[PAYMENT] Stripe refund for %s failed: %s", payment_intent_id, exc)
            raise RefundFailedError() from exc
        return refund["id"]

    def construct_webhook_event(self, payload: bytes, signature: str) -> WebhookEvent:
        if not self.webhook_secret:
            raise InvalidWebhookError("Webhook secret is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise InvalidWebhookError() from exc

        data_object = event["data"]["object"]
        intent = _intent_info(data_object) if data_object.get("object") == "payment_intent" else None
        return WebhookEvent(type=event["type"], intent=intent)


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency; tests override it with a fake gateway."""
    return StripePaymentGateway()


@dataclass(frozen=True)
class PaymentConfirmation:
    order_id: int
    payment_status: str
    already_processed: bool


def _find_order_for_intent(db: Session, intent: PaymentIntentInfo) -> Order | None:
    order = db.scalar(select(Order).where(Order.payment_intent_id == intent.id).limit(1))
    if order is not None:
        return order
    order_id = intent.metadata.get("order_id")
    if order_id and order_id.isdigit():
        return db.get(Order, int(order_id))
    return None


def confirm_payment(
    db: Session,
    gateway: PaymentGateway,
    payment_intent_id: str,
    user_id: int | None = None,
) -> PaymentConfirmation:
    """Mark an order paid after the client completed the intent.

    The provider is the source of truth. Confirming an already completed order
    is a no-op.
    """
    intent: PaymentIntentInfo = gateway.retrieve_payment_intent(payment_intent_id)
    if intent.status != "succeeded":
        raise PaymentNotCompletedError()

    order = _find_order_for_intent(db, intent)
    if order is None:
        raise OrderNotFoundError(f"No order found for payment {payment_intent_id}")

    if order.user_id is not None:
        if user_id is not None and order.user_id != user_id:
            raise OrderAccessDeniedError("Not authorized to confirm payment for this order")
    elif order.guest_email:
        intent_email = intent.metadata.get("customer_email")
        if intent_email and intent_email.lower() != order.guest_email.lower():
            raise OrderAccessDeniedError("Not authorized to confirm payment for this order")

    if order.payment_status == "COMPLETED":
        logger.info("[PAYMENT] Order %s already marked as COMPLETED (idempotent)", order.id)
        return PaymentConfirmation(order.id, order.payment_status, already_processed=True)

    set_payment_status(order, "COMPLETED")
    order.payment_intent_id = intent.id
    db.commit()
    logger.info("[PAYMENT] Order %s payment status -> COMPLETED (manual confirmation)", order.id)
    return PaymentConfirmation(order.id, order.payment_status, already_processed=False)


def _apply_webhook_status(db: Session, intent: PaymentIntentInfo, new_status: str) -> None:
    order = _find_order_for_intent(db, intent)
    if order is None:
        logger.warning("[PAYMENT] Webhook: no order for payment intent %s", intent.id)
        return

    if order.payment_status == new_status:
        logger.info("[PAYMENT] Order %s already marked as %s (webhook retry)", order.id, new_status)
        return
    # Late or out-of-order deliveries are acknowledged without a status change.
    if not can_transition(order.payment_status, new_status):
        logger.info(
            "[PAYMENT] Ignoring webhook %s -> %s for order %s (out of order)",
            order.payment_status,
            new_status,
            order.id,
        )
        return

    previous = order.payment_status
    set_payment_status(order, new_status)
    db.commit()
    logger.info("[PAYMENT] Order %s payment status: %s -> %s (webhook)", order.id, previous, new_status)


def handle_webhook(db: Session, gateway: PaymentGateway, payload: bytes, signature: str) -> WebhookEvent:
    """Verify and apply a provider webhook event."""
    event: WebhookEvent = gateway.construct_webhook_event(payload, signature)

    if event.type == "payment_intent.succeeded" and event.intent is not None:
        _apply_webhook_status(db, event.intent, "COMPLETED")
    elif event.type == "payment_intent.payment_failed" and event.intent is not None:
        _apply_webhook_status(db, event.intent, "FAILED")
    else:
        logger.info("[PAYMENT] Unhandled webhook event type: %s", event.type)
    return event


def refund_order(db: Session, gateway: PaymentGateway, order_id: int, amount: Decimal | None = None) -> Order:
    """Refund a paid order through the provider.

    Omitting ``amount`` (or passing the full total) refunds the order and marks
    it REFUNDED. A smaller amount is a partial refund; the order stays
    COMPLETED so the remainder can still be refunded later.
    """
    order: Order | None = db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError()
    if order.payment_status != "COMPLETED":
        raise InvalidStatusTransitionError(order.payment_status, "REFUNDED")
    if not order.payment_intent_id:
        raise PaymentNotCompletedError()
    if amount is not None and not Decimal("0") < amount <= order.total_amount:
        raise InvalidRefundAmountError()

    refund_id: str = gateway.create_refund(order.payment_intent_id, amount)
    if amount is not None and amount < order.total_amount:
        logger.info("[PAYMENT] Order %s partially refunded %s (refund %s)", order.id, amount, refund_id)
        return order

    set_payment_status(order, "REFUNDED")
    db.commit()
    db.refresh(order)
    logger.info("[PAYMENT] Order %s refunded (refund %s)", order.id, refund_id)
    return order

"""Payment API schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field


class PaymentConfirmRequest(BaseModel):
    payment_intent_id: str


class PaymentConfirmResponse(BaseModel):
    order_id: int
    payment_status: str
    already_processed: bool


class RefundRequest(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0)


class WebhookAck(BaseModel):
    received: bool = True
    event_type: str

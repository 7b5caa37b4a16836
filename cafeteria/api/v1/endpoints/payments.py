"""Payment confirmation, provider webhook and refunds."""

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cafeteria.core.security import get_optional_user, require_roles
from cafeteria.db.session import get_db
from cafeteria.models.user import User
from cafeteria.schemas.order import OrderRead
from cafeteria.schemas.payment import PaymentConfirmRequest, PaymentConfirmResponse, RefundRequest, WebhookAck
from cafeteria.services.payment_service import (
    PaymentGateway,
    confirm_payment,
    get_payment_gateway,
    handle_webhook,
    refund_order,
)

router: APIRouter = APIRouter()


@router.post("/confirm", response_model=PaymentConfirmResponse)
def confirm(
    payload: PaymentConfirmRequest,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: User | None = Depends(get_optional_user),
) -> PaymentConfirmResponse:
    user_id = current_user.id if current_user is not None else None
    result = confirm_payment(db, gateway, payload.payment_intent_id, user_id=user_id)
    return PaymentConfirmResponse(
        order_id=result.order_id,
        payment_status=result.payment_status,
        already_processed=result.already_processed,
    )


@router.post("/webhook", response_model=WebhookAck)
async def webhook(
    request: Request,
    stripe_signature: str = Header(default="", alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> WebhookAck:
    payload: bytes = await request.body()
    event = await run_in_threadpool(handle_webhook, db, gateway, payload, stripe_signature)
    return WebhookAck(received=True, event_type=event.type)


@router.post("/orders/{order_id}/refund", response_model=OrderRead)
def refund(
    order_id: int,
    payload: RefundRequest,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    _: User = Depends(require_roles("FINANCE", "ADMIN")),
) -> OrderRead:
    return OrderRead.model_validate(refund_order(db, gateway, order_id, payload.amount))

"""Kitchen fulfillment endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cafeteria.core.security import require_roles
from cafeteria.db.session import get_db
from cafeteria.models.user import User
from cafeteria.schemas.order import FulfillmentStatusUpdate, OrderRead
from cafeteria.services.order_service import update_order_fulfillment, update_order_item_status

router: APIRouter = APIRouter()
kitchen_staff = require_roles("KITCHEN", "ADMIN")


@router.patch("/orders/{order_id}/status", response_model=OrderRead)
def set_order_status(
    order_id: int,
    payload: FulfillmentStatusUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(kitchen_staff),
) -> OrderRead:
    return OrderRead.model_validate(update_order_fulfillment(db, order_id, payload.status))


@router.patch("/order-items/{item_id}/status", response_model=OrderRead)
def set_item_status(
    item_id: int,
    payload: FulfillmentStatusUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(kitchen_staff),
) -> OrderRead:
    return OrderRead.model_validate(update_order_item_status(db, item_id, payload.status))

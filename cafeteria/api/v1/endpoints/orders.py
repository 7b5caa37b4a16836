"""Order endpoints for registered users and guests."""

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cafeteria.api.v1.deps import get_order_service
from cafeteria.core.config import settings
from cafeteria.core.security import get_current_user, issue_guest_checkout_token, verify_guest_checkout_token
from cafeteria.db.session import get_read_db
from cafeteria.models.user import MANAGEMENT_ROLES, User
from cafeteria.schemas.order import (
    GuestCheckoutTokenResponse,
    GuestOrderCreate,
    OrderCreate,
    OrderCreateResponse,
    OrderPageResponse,
    OrderRead,
)
from cafeteria.services.order_service import (
    OrderResult,
    OrderService,
    get_guest_order,
    get_last_order,
    get_order_for_user,
    get_user_orders,
)

router: APIRouter = APIRouter()


def _to_response(result: OrderResult) -> OrderCreateResponse:
    return OrderCreateResponse(
        order=OrderRead.model_validate(result.order),
        client_secret=result.client_secret,
        access_token=result.access_token,
    )


@router.post("", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
) -> OrderCreateResponse:
    result = service.create_order(current_user.id, payload, background_tasks)
    return _to_response(result)


@router.get("", response_model=OrderPageResponse)
def list_my_orders(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_read_db),
    current_user: User = Depends(get_current_user),
) -> OrderPageResponse:
    result = get_user_orders(db, current_user.id, start_date=start_date, end_date=end_date, page=page, limit=limit)
    return OrderPageResponse(
        orders=[OrderRead.model_validate(order) for order in result.orders],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
    )


@router.get("/last", response_model=OrderRead | None)
def last_order(db: Session = Depends(get_read_db), current_user: User = Depends(get_current_user)) -> OrderRead | None:
    order = get_last_order(db, current_user.id)
    return OrderRead.model_validate(order) if order is not None else None


@router.post("/guest/token", response_model=GuestCheckoutTokenResponse)
def guest_checkout_token() -> GuestCheckoutTokenResponse:
    return GuestCheckoutTokenResponse(
        token=issue_guest_checkout_token(),
        expires_in_seconds=settings.guest_checkout_token_ttl_seconds,
    )


@router.post("/guest", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
def create_guest_order(
    payload: GuestOrderCreate,
    background_tasks: BackgroundTasks,
    service: OrderService = Depends(get_order_service),
) -> OrderCreateResponse:
    if not verify_guest_checkout_token(payload.guest_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired checkout token")
    order_data = OrderCreate(location_id=payload.location_id, items=payload.items, delivery_notes=payload.delivery_notes)
    result = service.create_guest_order(order_data, payload.guest_info, background_tasks)
    return _to_response(result)


@router.get("/guest", response_model=OrderRead)
def read_guest_order(
    token: str = Query(...),
    email: str = Query(...),
    db: Session = Depends(get_read_db),
) -> OrderRead:
    return OrderRead.model_validate(get_guest_order(db, token, email))


@router.get("/{order_id}", response_model=OrderRead)
def read_order(
    order_id: int,
    db: Session = Depends(get_read_db),
    current_user: User = Depends(get_current_user),
) -> OrderRead:
    order = get_order_for_user(db, order_id, current_user.id, allow_any=current_user.role in MANAGEMENT_ROLES)
    return OrderRead.model_validate(order)

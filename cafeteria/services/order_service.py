"""Order creation engine, order reads and kitchen fulfillment updates."""

from __future__ import annotations

import logging
import math
import random
import time as time_module
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cafeteria.core.config import settings
from cafeteria.core.exceptions import (
    CustomerNotFoundError,
    GuestEmailRegisteredError,
    InsufficientInventoryError,
    InvalidOrUnavailableItemsError,
    InvalidStatusTransitionError,
    ItemsNotAvailableAtLocationError,
    OrderAccessDeniedError,
    OrderingWindowClosedError,
    OrderNotFoundError,
    OrderNumberCollisionExhaustedError,
)
from cafeteria.core.security import generate_guest_order_token, verify_guest_order_token
from cafeteria.models.location import Location
from cafeteria.models.menu import MenuItem
from cafeteria.models.order import Order, OrderItem
from cafeteria.models.user import User
from cafeteria.schemas.order import GuestInfo, OrderCreate, OrderItemPayload
from cafeteria.services.catalog_service import (
    find_location_by_id,
    find_menu_item_location_links,
    find_menu_items_by_ids,
)
from cafeteria.services.inventory_service import check_bulk_availability, deduct_inventory
from cafeteria.services.order_status import derive_fulfillment_status, validate_item_status
from cafeteria.services.payment_service import PaymentGateway, PaymentIntentInfo, StripePaymentGateway
from cafeteria.services.settings_service import OrderingConfigProvider
from cafeteria.services.user_service import get_user_by_email, get_user_by_id

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ORDER_NUMBER_PREFIX = "ORD"


@dataclass(frozen=True)
class CustomerSnapshot:
    """Who is paying, captured before the order transaction starts."""

    email: str
    user_id: int | None = None
    full_name: str | None = None
    department: str | None = None
    guest_first_name: str | None = None
    guest_last_name: str | None = None


@dataclass
class OrderResult:
    order: Order
    client_secret: str
    access_token: str | None = None


@dataclass
class OrderPage:
    orders: list[Order]
    total: int
    page: int
    total_pages: int


def round_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def price_cart(
    items: list[OrderItemPayload], menu_items: dict[int, MenuItem]
) -> tuple[list[dict[str, Any]], Decimal]:
    """Resolve authoritative prices for a cart.

    Returns the OrderItem column values for every line and the order total.
    Variation groups or options that do not belong to the menu item are ignored.
    """
    lines: list[dict[str, Any]] = []
    total = Decimal("0")

    for item in items:
        menu_item: MenuItem = menu_items[item.menu_item_id]
        groups = {group.id: group for group in menu_item.variation_groups}
        modifier = Decimal("0")
        resolved: list[dict[str, Any]] = []

        for selection in item.selected_variations or []:
            group = groups.get(selection.group_id)
            if group is None:
                continue
            options = {option.id: option for option in group.options}
            for option_id in selection.option_ids:
                option = options.get(option_id)
                if option is None:
                    continue
                modifier += option.price_modifier
                resolved.append(
                    {
                        "group_id": group.id,
                        "group_name": group.name,
                        "option_id": option.id,
                        "option_name": option.name,
                        "price_modifier": str(option.price_modifier),
                    }
                )

        item_price: Decimal = menu_item.price + modifier
        total += item_price * item.quantity

        customizations = None
        if item.customizations is not None or item.special_requests:
            customizations = {"customizations": item.customizations, "special_requests": item.special_requests}

        lines.append(
            {
                "menu_item_id": menu_item.id,
                "quantity": item.quantity,
                "price_at_purchase": round_money(item_price),
                "selected_variations": (
                    {"variations": resolved, "total_modifier": str(modifier)} if resolved else None
                ),
                "customizations": customizations,
                "item_name": menu_item.name,
                "item_description": menu_item.description,
                "item_category": menu_item.category,
                "item_image_url": menu_item.image_url,
                "item_base_price": menu_item.price,
            }
        )

    return lines, round_money(total)


def generate_order_number(db: Session, now: datetime) -> str:
    """Next ``ORD-YYYYMMDD-NNNN`` number for the UTC day of ``now``."""
    prefix = f"{ORDER_NUMBER_PREFIX}-{now.astimezone(timezone.utc):%Y%m%d}-"
    latest: str | None = db.scalar(
        select(Order.order_number)
        .where(Order.order_number.like(f"{prefix}%"))
        .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
        .limit(1)
    )
    sequence = 1
    if latest is not None:
        sequence = int(latest[len(prefix):]) + 1
    return f"{prefix}{sequence:04d}"


def _is_order_number_collision(exc: IntegrityError) -> bool:
    return "order_number" in str(exc.orig)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """Turns a cart into a persisted, payable order.

    Every collaborator can be injected so tests can pin the clock, the
    ordering window and the payment provider.
    """

    def __init__(
        self,
        db: Session,
        *,
        config_provider: OrderingConfigProvider | None = None,
        payment_gateway: PaymentGateway | None = None,
        clock: Callable[[], datetime] = _utcnow,
        max_attempts: int | None = None,
        retry_max_delay_ms: int | None = None,
        sleep: Callable[[float], None] = time_module.sleep,
    ) -> None:
        self.db = db
        self.config_provider = config_provider or OrderingConfigProvider(db)
        self.payment_gateway = payment_gateway or StripePaymentGateway()
        self.clock = clock
        self.max_attempts = max_attempts or settings.order_number_max_attempts
        self.retry_max_delay_ms = (
            settings.order_number_retry_max_delay_ms if retry_max_delay_ms is None else retry_max_delay_ms
        )
        self.sleep = sleep

    def create_order(
        self,
        user_id: int,
        order_data: OrderCreate,
        background_tasks: BackgroundTasks | None = None,
    ) -> OrderResult:
        """Create an order for a registered user."""
        user: User | None = get_user_by_id(self.db, user_id)
        if user is None or not user.is_active:
            raise CustomerNotFoundError()

        customer = CustomerSnapshot(
            email=user.email,
            user_id=user.id,
            full_name=user.full_name,
            department=user.department,
        )
        return self._create_with_retry(customer, order_data, background_tasks)

    def create_guest_order(
        self,
        order_data: OrderCreate,
        guest_info: GuestInfo,
        background_tasks: BackgroundTasks | None = None,
    ) -> OrderResult:
        """Create an order for a customer without an account."""
        email = guest_info.email.strip().lower()
        registered = get_user_by_email(self.db, email)
        if registered is not None:
            self.db.rollback()
            raise GuestEmailRegisteredError()

        customer = CustomerSnapshot(
            email=email,
            full_name=f"{guest_info.first_name} {guest_info.last_name}",
            guest_first_name=guest_info.first_name,
            guest_last_name=guest_info.last_name,
        )
        result = self._create_with_retry(customer, order_data, background_tasks)
        result.access_token = generate_guest_order_token(result.order.id)
        return result

    def _create_with_retry(
        self,
        customer: CustomerSnapshot,
        order_data: OrderCreate,
        background_tasks: BackgroundTasks | None,
    ) -> OrderResult:
        for attempt in range(1, self.max_attempts + 1):
            try:
                result, intent = self._attempt(customer, order_data)
            except IntegrityError as exc:
                if not _is_order_number_collision(exc):
                    raise
                logger.warning(
                    "[ORDER] Order number collision (attempt %s/%s): %s",
                    attempt,
                    self.max_attempts,
                    exc.orig,
                )
                if attempt < self.max_attempts:
                    self.sleep(random.uniform(0, self.retry_max_delay_ms) / 1000)
                continue

            order_id: int = result.order.id
            if background_tasks is not None:
                background_tasks.add_task(self._link_payment_intent, intent.id, order_id)
            else:
                self._link_payment_intent(intent.id, order_id)
            return result

        logger.error("[ORDER] Giving up after %s order number collisions", self.max_attempts)
        raise OrderNumberCollisionExhaustedError()

    def _attempt(self, customer: CustomerSnapshot, order_data: OrderCreate) -> tuple[OrderResult, PaymentIntentInfo]:
        intent: PaymentIntentInfo | None = None
        try:
            location, menu_items = self._validate(order_data)
            lines, total_amount = price_cart(order_data.items, menu_items)

            now: datetime = self.clock()
            order = Order(
                order_number=generate_order_number(self.db, now),
                user_id=customer.user_id,
                guest_email=customer.email if customer.user_id is None else None,
                guest_first_name=customer.guest_first_name,
                guest_last_name=customer.guest_last_name,
                location_id=location.id if location is not None else None,
                total_amount=total_amount,
                payment_status="PENDING",
                fulfillment_status="PLACED",
                order_date=now.astimezone(timezone.utc).date(),
                special_requests=order_data.delivery_notes,
                customer_full_name=customer.full_name,
                customer_email=customer.email,
                customer_department=customer.department,
                location_name=location.name if location is not None else None,
                location_address=location.address if location is not None else None,
                location_phone=location.phone if location is not None else None,
            )
            order.items = [OrderItem(**line) for line in lines]
            self.db.add(order)
            self.db.flush()

            intent = self.payment_gateway.create_payment_intent(
                amount=total_amount,
                customer_email=customer.email,
                metadata={"order_number": order.order_number},
            )
            order.payment_intent_id = intent.id
            logger.info("[ORDER] Payment intent %s created for %s (%s)", intent.id, order.order_number, total_amount)

            if location is not None:
                for item in order_data.items:
                    deduct_inventory(self.db, item.menu_item_id, location.id, item.quantity, order.id)

            self.db.commit()
        except Exception:
            self.db.rollback()
            if intent is not None:
                self.payment_gateway.cancel_payment_intent(intent.id)
            raise

        self.db.refresh(order)
        logger.info(
            "[ORDER] Created order %s id=%s total=%s owner=%s",
            order.order_number,
            order.id,
            order.total_amount,
            f"user:{customer.user_id}" if customer.user_id is not None else "guest",
        )
        return OrderResult(order=order, client_secret=intent.client_secret or ""), intent

    def _validate(self, order_data: OrderCreate) -> tuple[Location | None, dict[int, MenuItem]]:
        window = self.config_provider.is_ordering_window_active()
        if not window.active:
            raise OrderingWindowClosedError(window.message or "Ordering is currently unavailable")

        location: Location | None = None
        if order_data.location_id is not None:
            location = find_location_by_id(self.db, order_data.location_id)

        requested_ids: set[int] = {item.menu_item_id for item in order_data.items}
        menu_items = {menu_item.id: menu_item for menu_item in find_menu_items_by_ids(self.db, requested_ids)}
        if len(menu_items) != len(requested_ids):
            raise InvalidOrUnavailableItemsError(sorted(requested_ids - menu_items.keys()))

        if location is None:
            return None, menu_items

        linked_ids = find_menu_item_location_links(self.db, location.id, requested_ids)
        unlinked = sorted(requested_ids - linked_ids)
        if unlinked:
            raise ItemsNotAvailableAtLocationError([menu_items[menu_item_id].name for menu_item_id in unlinked])

        quantities: dict[int, int] = {}
        for item in order_data.items:
            quantities[item.menu_item_id] = quantities.get(item.menu_item_id, 0) + item.quantity
        results = check_bulk_availability(
            self.db,
            [
                {"menu_item_id": menu_item_id, "location_id": location.id, "quantity": quantity}
                for menu_item_id, quantity in quantities.items()
            ],
        )
        shortages = [
            {
                "menu_item_id": result.menu_item_id,
                "name": menu_items[result.menu_item_id].name,
                "current_stock": result.current_stock,
                "requested": result.requested,
            }
            for result in results
            if not result.available
        ]
        if shortages:
            raise InsufficientInventoryError(shortages)

        return location, menu_items

    def _link_payment_intent(self, payment_intent_id: str, order_id: int) -> None:
        try:
            self.payment_gateway.update_payment_intent_metadata(payment_intent_id, order_id)
        except Exception:
            logger.exception("[ORDER] Failed to attach order %s to payment intent %s", order_id, payment_intent_id)


def get_order_for_user(db: Session, order_id: int, user_id: int, *, allow_any: bool = False) -> Order:
    order: Order | None = db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError()
    if not allow_any and order.user_id != user_id:
        raise OrderAccessDeniedError("Not authorized to view this order")
    return order


def get_guest_order(db: Session, token: str, email: str) -> Order:
    """Resolve a guest order from its access token; the email must match too."""
    order_id: int = verify_guest_order_token(token)
    order: Order | None = db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError()
    if order.guest_email is None or order.guest_email.lower() != email.strip().lower():
        raise OrderAccessDeniedError("Email does not match this order")
    return order


def get_user_orders(
    db: Session,
    user_id: int,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    limit: int = 20,
) -> OrderPage:
    page = max(page, 1)
    limit = max(min(limit, 100), 1)

    filters = [Order.user_id == user_id]
    if start_date is not None:
        filters.append(Order.order_date >= start_date)
    if end_date is not None:
        filters.append(Order.order_date <= end_date)

    total: int = db.scalar(select(func.count(Order.id)).where(*filters)) or 0
    orders = list(
        db.scalars(
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
    )
    return OrderPage(orders=orders, total=total, page=page, total_pages=math.ceil(total / limit))


def get_last_order(db: Session, user_id: int) -> Order | None:
    return db.scalar(
        select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc()).limit(1)
    )


def update_order_item_status(db: Session, item_id: int, status: str) -> Order:
    """Mark one line as placed or fulfilled and roll the change up to its order."""
    new_status = validate_item_status(status)
    item: OrderItem | None = db.get(OrderItem, item_id)
    if item is None:
        raise OrderNotFoundError("Order item not found")

    order: Order = item.order
    if order.payment_status != "COMPLETED" and new_status == "FULFILLED":
        raise InvalidStatusTransitionError(item.fulfillment_status, new_status)

    item.fulfillment_status = new_status
    order.fulfillment_status = derive_fulfillment_status([line.fulfillment_status for line in order.items])
    db.commit()
    db.refresh(order)
    logger.info("[ORDER] Item %s -> %s; order %s is %s", item_id, new_status, order.id, order.fulfillment_status)
    return order


def update_order_fulfillment(db: Session, order_id: int, status: str) -> Order:
    """Apply a whole-order kitchen action to every line."""
    new_status = validate_item_status(status)
    order: Order | None = db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError()
    if order.payment_status != "COMPLETED" and new_status == "FULFILLED":
        raise InvalidStatusTransitionError(order.fulfillment_status, new_status)

    for item in order.items:
        item.fulfillment_status = new_status
    order.fulfillment_status = derive_fulfillment_status([item.fulfillment_status for item in order.items])
    db.commit()
    db.refresh(order)
    logger.info("[ORDER] Order %s fulfillment -> %s", order.id, order.fulfillment_status)
    return order

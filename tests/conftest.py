"""Shared fixtures: a throwaway SQLite database, a seeded catalog and fake collaborators."""

from __future__ import annotations

import itertools
import json
import threading
from dataclasses import replace
from datetime import time
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from cafeteria import main as main_module
from cafeteria.api.v1.deps import get_config_provider
from cafeteria.core.exceptions import InvalidWebhookError, PaymentIntentCreationFailedError, RefundFailedError
from cafeteria.core.security import create_access_token
from cafeteria.db import session as db_session
from cafeteria.db.base import Base
from cafeteria.db.session import build_engine
from cafeteria.main import app
from cafeteria.services.catalog_service import (
    add_variation_group,
    add_variation_option,
    create_location,
    create_menu_item,
    link_menu_item_to_location,
)
from cafeteria.services.inventory_service import update_inventory
from cafeteria.services.payment_service import PaymentGateway, PaymentIntentInfo, WebhookEvent, get_payment_gateway
from cafeteria.services.settings_service import OrderingWindowStatus
from cafeteria.services.user_service import create_user


class FakePaymentGateway(PaymentGateway):
    """In-memory stand-in for the card processor."""

    def __init__(self) -> None:
        self.intents: dict[str, PaymentIntentInfo] = {}
        self.amounts: dict[str, Decimal] = {}
        self.metadata_updates: list[tuple[str, int]] = []
        self.cancelled: list[str] = []
        self.refunds: list[tuple[str, Decimal | None]] = []
        self.fail_create = False
        self.fail_metadata = False
        self.fail_refund = False
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def create_payment_intent(self, *, amount, customer_email, currency=None, metadata=None):
        if self.fail_create:
            raise PaymentIntentCreationFailedError()
        with self._lock:
            number = next(self._counter)
        intent = PaymentIntentInfo(
            id=f"pi_test_{number}",
            client_secret=f"pi_test_{number}_secret",
            metadata={"order_id": "", "customer_email": customer_email, **(metadata or {})},
        )
        self.intents[intent.id] = intent
        self.amounts[intent.id] = amount
        return intent

    def update_payment_intent_metadata(self, payment_intent_id, order_id):
        if self.fail_metadata:
            raise RuntimeError("provider unavailable")
        self.metadata_updates.append((payment_intent_id, order_id))
        intent = self.intents[payment_intent_id]
        self.intents[payment_intent_id] = replace(intent, metadata={**intent.metadata, "order_id": str(order_id)})

    def cancel_payment_intent(self, payment_intent_id):
        self.cancelled.append(payment_intent_id)

    def retrieve_payment_intent(self, payment_intent_id):
        return self.intents[payment_intent_id]

    def create_refund(self, payment_intent_id, amount=None):
        if self.fail_refund:
            raise RefundFailedError()
        self.refunds.append((payment_intent_id, amount))
        return f"re_{payment_intent_id}"

    def construct_webhook_event(self, payload, signature):
        if signature != "valid-signature":
            raise InvalidWebhookError()
        event = json.loads(payload)
        data_object = event["data"]["object"]
        intent = self.intents.get(data_object.get("id", ""))
        return WebhookEvent(type=event["type"], intent=intent)

    def mark_succeeded(self, payment_intent_id: str) -> None:
        self.intents[payment_intent_id] = replace(self.intents[payment_intent_id], status="succeeded")


class FixedOrderingWindow:
    """Ordering window that is open or closed regardless of the clock."""

    def __init__(self, active: bool = True) -> None:
        self.active = active

    def is_ordering_window_active(self, now=None) -> OrderingWindowStatus:
        if self.active:
            return OrderingWindowStatus(active=True, message=None, start=time(7, 0), end=time(14, 0))
        return OrderingWindowStatus(
            active=False,
            message="Ordering is only available between 07:00 and 14:00",
            start=time(7, 0),
            end=time(14, 0),
        )


@pytest.fixture()
def session_local(tmp_path: Path, monkeypatch):
    engine = build_engine(f"sqlite:///{tmp_path / 'cafeteria_test.db'}")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(main_module, "engine", engine)
    monkeypatch.setattr(main_module, "SessionLocal", testing_session_local)

    yield testing_session_local
    engine.dispose()


@pytest.fixture()
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture()
def ordering_window() -> FixedOrderingWindow:
    return FixedOrderingWindow(active=True)


@pytest.fixture()
def client(session_local, gateway, ordering_window):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_config_provider] = lambda: ordering_window
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def catalog(session_local) -> SimpleNamespace:
    """Two locations, a burger with variations, a tracked muffin and a few unavailable items."""
    with session_local() as db:
        main = create_location(db, "Main Cafeteria", "1 Care Street", "555-0100")
        north = create_location(db, "North Wing", "2 Care Street", "555-0200")

        burger = create_menu_item(db, name="Burger", price=Decimal("10.00"), description="Beef burger", category="LUNCH")
        size = add_variation_group(db, burger.id, name="Size", is_required=True)
        small = add_variation_option(db, size.id, name="Small", is_default=True)
        large = add_variation_option(db, size.id, name="Large", price_modifier=Decimal("2.00"), display_order=1)
        extras = add_variation_group(db, burger.id, name="Extras", type="MULTI_SELECT", display_order=1)
        cheese = add_variation_option(db, extras.id, name="Cheese", price_modifier=Decimal("0.50"))
        bacon = add_variation_option(db, extras.id, name="Bacon", price_modifier=Decimal("1.25"), display_order=1)

        muffin = create_menu_item(db, name="Muffin", price=Decimal("3.50"), category="SNACK", track_inventory=True)
        coffee = create_menu_item(db, name="Coffee", price=Decimal("4.20"), category="DRINK", track_inventory=True)
        soup = create_menu_item(db, name="Soup", price=Decimal("6.00"))
        retired = create_menu_item(db, name="Retired Pie", price=Decimal("5.00"), is_active=False)

        for item in (burger, muffin, coffee, retired):
            link_menu_item_to_location(db, item.id, main.id)
        link_menu_item_to_location(db, soup.id, north.id)

        update_inventory(db, muffin.id, main.id, stock_quantity=5, change_type="RESTOCK")
        update_inventory(db, coffee.id, main.id, stock_quantity=10, change_type="RESTOCK")

        staff = create_user(db, "staff@example.com", "secret123", full_name="Sam Staff", department="Nursing")
        other_staff = create_user(db, "other@example.com", "secret123", full_name="Olive Other")
        kitchen = create_user(db, "kitchen@example.com", "secret123", role="KITCHEN")
        finance = create_user(db, "finance@example.com", "secret123", role="FINANCE")
        admin = create_user(db, "admin@example.com", "secret123", role="ADMIN")

        return SimpleNamespace(
            location_id=main.id,
            other_location_id=north.id,
            burger_id=burger.id,
            size_group_id=size.id,
            small_id=small.id,
            large_id=large.id,
            extras_group_id=extras.id,
            cheese_id=cheese.id,
            bacon_id=bacon.id,
            muffin_id=muffin.id,
            coffee_id=coffee.id,
            soup_id=soup.id,
            retired_id=retired.id,
            staff_id=staff.id,
            other_staff_id=other_staff.id,
            kitchen_id=kitchen.id,
            finance_id=finance.id,
            admin_id=admin.id,
        )


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"}


@pytest.fixture()
def headers_for():
    return auth_headers

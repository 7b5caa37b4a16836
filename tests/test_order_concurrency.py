"""Concurrent order creation: unique order numbers, no overselling, all-or-nothing writes."""

import threading
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from cafeteria.core.exceptions import InsufficientInventoryError, InventoryDeductionConflictError, OrderNumberCollisionExhaustedError
from cafeteria.models.inventory import Inventory, InventoryHistory
from cafeteria.models.order import Order, OrderItem
from cafeteria.schemas.order import GuestInfo, OrderCreate, OrderItemPayload
from cafeteria.services import order_service
from cafeteria.services.inventory_service import AvailabilityResult, update_inventory
from cafeteria.services.order_service import OrderService


def _run_concurrently(count: int, target) -> tuple[list, list[Exception]]:
    barrier = threading.Barrier(count)
    results: list = []
    errors: list[Exception] = []
    lock = threading.Lock()

    def _worker(index: int) -> None:
        barrier.wait()
        try:
            value = target(index)
        except Exception as exc:
            with lock:
                errors.append(exc)
        else:
            with lock:
                results.append(value)

    threads = [threading.Thread(target=_worker, args=(index,)) for index in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results, errors


def test_two_guests_racing_for_last_unit(session_local, catalog, gateway, ordering_window) -> None:
    with session_local() as db:
        update_inventory(db, catalog.muffin_id, catalog.location_id, stock_quantity=1)

    def _place(index: int) -> str:
        with session_local() as db:
            service = OrderService(db, config_provider=ordering_window, payment_gateway=gateway, sleep=lambda _: None)
            result = service.create_guest_order(
                OrderCreate(location_id=catalog.location_id, items=[OrderItemPayload(menu_item_id=catalog.muffin_id)]),
                GuestInfo(email=f"guest{index}@example.com", first_name="Guest", last_name=str(index)),
            )
            return result.order.order_number

    results, errors = _run_concurrently(2, _place)

    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], InsufficientInventoryError)

    with session_local() as db:
        inventory = db.scalar(select(Inventory).where(Inventory.menu_item_id == catalog.muffin_id))
        assert inventory.stock_quantity == 0
        assert inventory.is_available is False
        assert db.scalar(select(func.count(Order.id))) == 1


def test_concurrent_orders_never_oversell(session_local, catalog, gateway, ordering_window) -> None:
    def _place(index: int) -> int:
        with session_local() as db:
            service = OrderService(db, config_provider=ordering_window, payment_gateway=gateway, sleep=lambda _: None)
            order_data = OrderCreate(
                location_id=catalog.location_id,
                items=[OrderItemPayload(menu_item_id=catalog.muffin_id, quantity=2)],
            )
            service.create_order(catalog.staff_id, order_data)
            return 2

    results, errors = _run_concurrently(6, _place)

    assert sum(results) <= 5
    assert len(results) == 2
    assert all(isinstance(error, InsufficientInventoryError) for error in errors)
    with session_local() as db:
        assert db.scalar(select(Inventory.stock_quantity).where(Inventory.menu_item_id == catalog.muffin_id)) == 1


def test_concurrent_orders_get_distinct_increasing_numbers(session_local, catalog, gateway, ordering_window) -> None:
    def _place(index: int) -> str:
        with session_local() as db:
            service = OrderService(db, config_provider=ordering_window, payment_gateway=gateway)
            order_data = OrderCreate(location_id=catalog.location_id, items=[OrderItemPayload(menu_item_id=catalog.burger_id)])
            return service.create_order(catalog.staff_id, order_data).order.order_number

    results, errors = _run_concurrently(20, _place)

    assert errors == []
    assert len(set(results)) == 20
    prefix = f"ORD-{datetime.now(timezone.utc):%Y%m%d}-"
    assert all(number.startswith(prefix) for number in results)
    assert sorted(int(number[len(prefix):]) for number in results) == list(range(1, 21))


def test_order_number_collision_is_retried(session_local, catalog, gateway, ordering_window, monkeypatch) -> None:
    order_data = OrderCreate(location_id=catalog.location_id, items=[OrderItemPayload(menu_item_id=catalog.burger_id)])
    with session_local() as db:
        first = OrderService(db, config_provider=ordering_window, payment_gateway=gateway).create_order(
            catalog.staff_id, order_data
        )
        taken = first.order.order_number

    real_generate = order_service.generate_order_number
    calls: list[str] = []

    def _stale_then_fresh(db, now):
        number = taken if not calls else real_generate(db, now)
        calls.append(number)
        return number

    sleeps: list[float] = []
    monkeypatch.setattr(order_service, "generate_order_number", _stale_then_fresh)

    with session_local() as db:
        service = OrderService(db, config_provider=ordering_window, payment_gateway=gateway, sleep=sleeps.append)
        second = service.create_order(catalog.staff_id, order_data)
        assert second.order.order_number != taken

    assert calls[0] == taken
    assert len(sleeps) == 1
    assert 0 <= sleeps[0] <= 0.1
    assert gateway.cancelled == []
    assert len(gateway.intents) == 2


def test_collision_retries_are_bounded(session_local, catalog, gateway, ordering_window, monkeypatch) -> None:
    order_data = OrderCreate(location_id=catalog.location_id, items=[OrderItemPayload(menu_item_id=catalog.muffin_id)])
    with session_local() as db:
        taken = OrderService(db, config_provider=ordering_window, payment_gateway=gateway).create_order(
            catalog.staff_id, order_data
        ).order.order_number

    attempts: list[int] = []

    def _always_taken(db, now):
        attempts.append(1)
        return taken

    monkeypatch.setattr(order_service, "generate_order_number", _always_taken)

    with session_local() as db:
        service = OrderService(db, config_provider=ordering_window, payment_gateway=gateway, sleep=lambda _: None)
        with pytest.raises(OrderNumberCollisionExhaustedError) as exc_info:
            service.create_order(catalog.staff_id, order_data)

    assert exc_info.value.message == "Could not complete order, please try again"
    assert exc_info.value.status_code == 503
    assert len(attempts) == 3
    with session_local() as db:
        assert db.scalar(select(func.count(Order.id))) == 1
        assert db.scalar(select(Inventory.stock_quantity).where(Inventory.menu_item_id == catalog.muffin_id)) == 4


def test_deduction_conflict_rolls_back_whole_order(session_local, catalog, gateway, ordering_window, monkeypatch) -> None:
    with session_local() as db:
        update_inventory(db, catalog.coffee_id, catalog.location_id, stock_quantity=1)

    def _stale_availability(db, items):
        return [
            AvailabilityResult(item["menu_item_id"], item["location_id"], True, 99, item["quantity"])
            for item in items
        ]

    monkeypatch.setattr(order_service, "check_bulk_availability", _stale_availability)
    order_data = OrderCreate(
        location_id=catalog.location_id,
        items=[
            OrderItemPayload(menu_item_id=catalog.muffin_id, quantity=2),
            OrderItemPayload(menu_item_id=catalog.coffee_id, quantity=3),
        ],
    )

    with session_local() as db:
        service = OrderService(db, config_provider=ordering_window, payment_gateway=gateway, sleep=lambda _: None)
        with pytest.raises(InventoryDeductionConflictError) as exc_info:
            service.create_order(catalog.staff_id, order_data)

    assert exc_info.value.shortages[0]["name"] == "Coffee"
    assert gateway.cancelled == ["pi_test_1"]
    with session_local() as db:
        assert db.scalar(select(func.count(Order.id))) == 0
        assert db.scalar(select(func.count(OrderItem.id))) == 0
        assert db.scalar(select(func.count(InventoryHistory.id)).where(InventoryHistory.change_type == "ORDER")) == 0
        assert db.scalar(select(Inventory.stock_quantity).where(Inventory.menu_item_id == catalog.muffin_id)) == 5

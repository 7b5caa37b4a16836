"""Authoritative pricing and snapshot tests for order creation."""

from decimal import Decimal

from sqlalchemy import select

from cafeteria.models.menu import MenuItem, VariationGroup, VariationOption
from cafeteria.models.order import Order
from cafeteria.schemas.order import OrderCreate, OrderItemPayload, SelectedVariationPayload
from cafeteria.services.order_service import OrderService, price_cart


def _service(db, gateway, ordering_window) -> OrderService:
    return OrderService(db, config_provider=ordering_window, payment_gateway=gateway, sleep=lambda _: None)


def test_large_burger_pair_costs_base_plus_modifier(session_local, catalog, gateway, ordering_window) -> None:
    order_data = OrderCreate(
        location_id=catalog.location_id,
        items=[
            OrderItemPayload(
                menu_item_id=catalog.burger_id,
                quantity=2,
                selected_variations=[SelectedVariationPayload(group_id=catalog.size_group_id, option_ids=[catalog.large_id])],
            )
        ],
    )

    with session_local() as db:
        result = _service(db, gateway, ordering_window).create_order(catalog.staff_id, order_data)
        order = result.order

        assert order.total_amount == Decimal("24.00")
        assert len(order.items) == 1
        item = order.items[0]
        assert item.price_at_purchase == Decimal("12.00")
        assert item.quantity == 2
        assert item.selected_variations == {
            "variations": [
                {
                    "group_id": catalog.size_group_id,
                    "group_name": "Size",
                    "option_id": catalog.large_id,
                    "option_name": "Large",
                    "price_modifier": "2.00",
                }
            ],
            "total_modifier": "2.00",
        }
        assert order.payment_intent_id == "pi_test_1"
        assert result.client_secret == "pi_test_1_secret"
        assert result.access_token is None

    assert gateway.amounts["pi_test_1"] == Decimal("24.00")


def test_total_sums_every_line_and_multi_select_option(session_local, catalog, gateway, ordering_window) -> None:
    order_data = OrderCreate(
        location_id=catalog.location_id,
        items=[
            OrderItemPayload(
                menu_item_id=catalog.burger_id,
                quantity=3,
                selected_variations=[
                    SelectedVariationPayload(group_id=catalog.size_group_id, option_ids=[catalog.large_id]),
                    SelectedVariationPayload(group_id=catalog.extras_group_id, option_ids=[catalog.cheese_id, catalog.bacon_id]),
                ],
            ),
            OrderItemPayload(menu_item_id=catalog.muffin_id, quantity=2),
        ],
    )

    with session_local() as db:
        order = _service(db, gateway, ordering_window).create_order(catalog.staff_id, order_data).order

        assert order.total_amount == Decimal("48.25")
        assert [item.price_at_purchase for item in order.items] == [Decimal("13.75"), Decimal("3.50")]
        assert order.items[0].selected_variations["total_modifier"] == "3.75"
        assert order.items[1].selected_variations is None
        assert sum(item.subtotal for item in order.items) == order.total_amount


def test_unknown_groups_and_options_are_ignored(session_local, catalog, gateway, ordering_window) -> None:
    order_data = OrderCreate(
        location_id=catalog.location_id,
        items=[
            OrderItemPayload(
                menu_item_id=catalog.burger_id,
                quantity=1,
                selected_variations=[
                    SelectedVariationPayload(group_id=catalog.size_group_id, option_ids=[catalog.large_id, 99999]),
                    SelectedVariationPayload(group_id=99999, option_ids=[catalog.cheese_id]),
                ],
            )
        ],
    )

    with session_local() as db:
        order = _service(db, gateway, ordering_window).create_order(catalog.staff_id, order_data).order

        assert order.total_amount == Decimal("12.00")
        assert len(order.items[0].selected_variations["variations"]) == 1


def test_total_is_rounded_once_over_the_unrounded_sum() -> None:
    tea = MenuItem(id=1, name="Tea", price=Decimal("1.10"), category="DRINK")
    milk = VariationGroup(id=5, name="Milk", type="SINGLE_SELECT")
    milk.options = [VariationOption(id=7, name="Oat", price_modifier=Decimal("0.333"))]
    tea.variation_groups = [milk]

    lines, total = price_cart(
        [OrderItemPayload(menu_item_id=1, quantity=3, selected_variations=[SelectedVariationPayload(group_id=5, option_ids=[7])])],
        {1: tea},
    )

    assert total == Decimal("4.30")
    assert lines[0]["price_at_purchase"] == Decimal("1.43")
    assert lines[0]["item_name"] == "Tea"


def test_order_keeps_snapshots_after_catalog_changes(session_local, catalog, gateway, ordering_window) -> None:
    order_data = OrderCreate(
        location_id=catalog.location_id,
        items=[
            OrderItemPayload(
                menu_item_id=catalog.burger_id,
                quantity=1,
                customizations={"no_onion": True},
                special_requests="Cut in half",
            )
        ],
        delivery_notes="Ward 3 desk",
    )

    with session_local() as db:
        order_id = _service(db, gateway, ordering_window).create_order(catalog.staff_id, order_data).order.id

    with session_local() as db:
        burger = db.get(MenuItem, catalog.burger_id)
        burger.name = "Deluxe Burger"
        burger.price = Decimal("15.00")
        db.commit()

    with session_local() as db:
        order = db.scalar(select(Order).where(Order.id == order_id))
        assert order.customer_full_name == "Sam Staff"
        assert order.customer_email == "staff@example.com"
        assert order.customer_department == "Nursing"
        assert order.location_name == "Main Cafeteria"
        assert order.location_address == "1 Care Street"
        assert order.location_phone == "555-0100"
        assert order.special_requests == "Ward 3 desk"

        item = order.items[0]
        assert item.item_name == "Burger"
        assert item.item_description == "Beef burger"
        assert item.item_category == "LUNCH"
        assert item.item_base_price == Decimal("10.00")
        assert item.price_at_purchase == Decimal("10.00")
        assert item.customizations == {"customizations": {"no_onion": True}, "special_requests": "Cut in half"}

"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("STAFF", "KITCHEN", "FINANCE", "ADMIN")
MENU_CATEGORIES = ("BREAKFAST", "LUNCH", "SNACK", "DRINK", "DESSERT")
VARIATION_GROUP_TYPES = ("SINGLE_SELECT", "MULTI_SELECT")
PAYMENT_STATUSES = ("PENDING", "COMPLETED", "FAILED", "REFUNDED")
FULFILLMENT_STATUSES = ("PLACED", "PARTIALLY_FULFILLED", "FULFILLED")
ITEM_FULFILLMENT_STATUSES = ("PLACED", "FULFILLED")
INVENTORY_CHANGE_TYPES = ("RESTOCK", "ORDER", "ADJUSTMENT", "WASTE")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("role", sa.Enum(*USER_ROLES, name="user_role"), nullable=False, server_default="STAFF"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_locations_is_active", "locations", ["is_active"])

    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.Enum(*MENU_CATEGORIES, name="menu_category"), nullable=False, server_default="LUNCH"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("track_inventory", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "variation_groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*VARIATION_GROUP_TYPES, name="variation_group_type"),
            nullable=False,
            server_default="SINGLE_SELECT",
        ),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_variation_groups_menu_item_id", "variation_groups", ["menu_item_id"])

    op.create_table(
        "variation_options",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("variation_groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price_modifier", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_variation_options_group_id", "variation_options", ["group_id"])

    op.create_table(
        "menu_item_locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("menu_item_id", "location_id", name="uq_menu_item_location"),
    )
    op.create_index("ix_menu_item_locations_menu_item_id", "menu_item_locations", ["menu_item_id"])
    op.create_index("ix_menu_item_locations_location_id", "menu_item_locations", ["location_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_number", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("guest_email", sa.String(length=255), nullable=True),
        sa.Column("guest_first_name", sa.String(length=255), nullable=True),
        sa.Column("guest_last_name", sa.String(length=255), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column(
            "payment_status",
            sa.Enum(*PAYMENT_STATUSES, name="payment_status"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column(
            "fulfillment_status",
            sa.Enum(*FULFILLMENT_STATUSES, name="fulfillment_status"),
            nullable=False,
            server_default="PLACED",
        ),
        sa.Column("payment_intent_id", sa.String(length=255), nullable=True),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("customer_full_name", sa.String(length=255), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_department", sa.String(length=255), nullable=True),
        sa.Column("location_name", sa.String(length=255), nullable=True),
        sa.Column("location_address", sa.String(length=255), nullable=True),
        sa.Column("location_phone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "(user_id IS NOT NULL AND guest_email IS NULL AND guest_first_name IS NULL AND guest_last_name IS NULL)"
            " OR (user_id IS NULL AND guest_email IS NOT NULL AND guest_first_name IS NOT NULL AND guest_last_name IS NOT NULL)",
            name="ck_orders_single_owner",
        ),
    )
    op.create_index("uq_orders_order_number", "orders", ["order_number"], unique=True)
    op.create_index("ix_orders_order_date_payment_status", "orders", ["order_date", "payment_status"])
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_guest_email", "orders", ["guest_email"])
    op.create_index("ix_orders_location_id", "orders", ["location_id"])
    op.create_index("ix_orders_payment_intent_id", "orders", ["payment_intent_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price_at_purchase", sa.Numeric(10, 2), nullable=False),
        sa.Column("selected_variations", sa.JSON(), nullable=True),
        sa.Column("customizations", sa.JSON(), nullable=True),
        sa.Column(
            "fulfillment_status",
            sa.Enum(*ITEM_FULFILLMENT_STATUSES, name="item_fulfillment_status"),
            nullable=False,
            server_default="PLACED",
        ),
        sa.Column("item_name", sa.String(length=255), nullable=True),
        sa.Column("item_description", sa.Text(), nullable=True),
        sa.Column("item_category", sa.String(length=32), nullable=True),
        sa.Column("item_image_url", sa.String(length=500), nullable=True),
        sa.Column("item_base_price", sa.Numeric(10, 2), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "inventories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("last_restocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("menu_item_id", "location_id", name="uq_inventory_menu_item_location"),
    )
    op.create_index("ix_inventories_menu_item_id", "inventories", ["menu_item_id"])
    op.create_index("ix_inventories_location_id", "inventories", ["location_id"])
    op.create_index("ix_inventories_stock_quantity", "inventories", ["stock_quantity"])

    op.create_table(
        "inventory_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("inventory_id", sa.Integer(), sa.ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "change_type",
            sa.Enum(*INVENTORY_CHANGE_TYPES, name="inventory_change_type"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("previous_qty", sa.Integer(), nullable=False),
        sa.Column("new_qty", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_inventory_history_inventory_id", "inventory_history", ["inventory_id"])
    op.create_index("ix_inventory_history_user_id", "inventory_history", ["user_id"])
    op.create_index("ix_inventory_history_order_id", "inventory_history", ["order_id"])
    op.create_index("ix_inventory_history_created_at", "inventory_history", ["created_at"])

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(length=100), primary_key=True),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_table("inventory_history")
    op.drop_table("inventories")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("menu_item_locations")
    op.drop_table("variation_options")
    op.drop_table("variation_groups")
    op.drop_table("menu_items")
    op.drop_table("locations")
    op.drop_table("users")

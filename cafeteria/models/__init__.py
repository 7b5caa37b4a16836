"""Application models package."""

from cafeteria.models.app_setting import AppSetting
from cafeteria.models.inventory import Inventory, InventoryHistory
from cafeteria.models.location import Location, MenuItemLocation
from cafeteria.models.menu import MenuItem, VariationGroup, VariationOption
from cafeteria.models.order import Order, OrderItem
from cafeteria.models.user import User

__all__ = [
    "AppSetting", "Inventory", "InventoryHistory", "Location", "MenuItemLocation", "MenuItem",
    "VariationGroup", "VariationOption", "Order", "OrderItem", "User",
]

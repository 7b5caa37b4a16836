"""Menu and location catalog reads used by ordering, plus admin helpers."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from cafeteria.models.location import Location, MenuItemLocation
from cafeteria.models.menu import MenuItem, VariationGroup, VariationOption


def find_menu_items_by_ids(db: Session, ids: set[int] | list[int]) -> list[MenuItem]:
    """Return active menu items with variation groups and options loaded.

    Inactive items are never returned, so they count as unavailable everywhere.
    """
    if not ids:
        return []
    return list(
        db.scalars(
            select(MenuItem)
            .where(MenuItem.id.in_(set(ids)), MenuItem.is_active.is_(True))
            .options(selectinload(MenuItem.variation_groups).selectinload(VariationGroup.options))
        ).all()
    )


def find_location_by_id(db: Session, location_id: int) -> Location | None:
    return db.get(Location, location_id)


def find_menu_item_location_links(db: Session, location_id: int, ids: set[int] | list[int]) -> set[int]:
    """Return the subset of menu item ids linked to a location."""
    if not ids:
        return set()
    return set(
        db.scalars(
            select(MenuItemLocation.menu_item_id).where(
                MenuItemLocation.location_id == location_id,
                MenuItemLocation.menu_item_id.in_(set(ids)),
            )
        ).all()
    )


def list_menu_for_location(db: Session, location_id: int) -> list[MenuItem]:
    """Return active items served at a location, ordered by category and name."""
    return list(
        db.scalars(
            select(MenuItem)
            .join(MenuItemLocation, MenuItemLocation.menu_item_id == MenuItem.id)
            .where(MenuItemLocation.location_id == location_id, MenuItem.is_active.is_(True))
            .options(selectinload(MenuItem.variation_groups).selectinload(VariationGroup.options))
            .order_by(MenuItem.category.asc(), MenuItem.name.asc())
        ).all()
    )


def create_location(db: Session, name: str, address: str | None = None, phone: str | None = None) -> Location:
    location = Location(name=name, address=address, phone=phone, is_active=True)
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def create_menu_item(
    db: Session,
    *,
    name: str,
    price: Decimal,
    description: str | None = None,
    category: str = "LUNCH",
    image_url: str | None = None,
    is_active: bool = True,
    track_inventory: bool = False,
) -> MenuItem:
    """Create and persist a menu item."""
    item = MenuItem(
        name=name,
        description=description,
        category=category,
        price=price,
        image_url=image_url,
        is_active=is_active,
        track_inventory=track_inventory,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def add_variation_group(
    db: Session,
    menu_item_id: int,
    *,
    name: str,
    type: str = "SINGLE_SELECT",
    is_required: bool = False,
    display_order: int = 0,
) -> VariationGroup:
    group = VariationGroup(
        menu_item_id=menu_item_id,
        name=name,
        type=type,
        is_required=is_required,
        display_order=display_order,
    )
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


def add_variation_option(
    db: Session,
    group_id: int,
    *,
    name: str,
    price_modifier: Decimal = Decimal("0.00"),
    is_default: bool = False,
    display_order: int = 0,
) -> VariationOption:
    option = VariationOption(
        group_id=group_id,
        name=name,
        price_modifier=price_modifier,
        is_default=is_default,
        display_order=display_order,
    )
    db.add(option)
    db.commit()
    db.refresh(option)
    return option


def link_menu_item_to_location(db: Session, menu_item_id: int, location_id: int) -> MenuItemLocation:
    """Make a menu item orderable at a location; existing links are returned as-is."""
    link: MenuItemLocation | None = db.scalar(
        select(MenuItemLocation).where(
            MenuItemLocation.menu_item_id == menu_item_id,
            MenuItemLocation.location_id == location_id,
        )
    )
    if link is None:
        link = MenuItemLocation(menu_item_id=menu_item_id, location_id=location_id)
        db.add(link)
        db.commit()
        db.refresh(link)
    return link

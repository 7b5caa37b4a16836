"""Menu browsing endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cafeteria.api.v1.deps import get_config_provider
from cafeteria.db.session import get_read_db
from cafeteria.schemas.menu import MenuItemRead, MenuResponse
from cafeteria.schemas.settings import OrderingWindowRead
from cafeteria.services.catalog_service import find_location_by_id, list_menu_for_location
from cafeteria.services.settings_service import OrderingConfigProvider

router: APIRouter = APIRouter()


@router.get("", response_model=MenuResponse)
def get_menu(
    location_id: int = Query(...),
    db: Session = Depends(get_read_db),
    config_provider: OrderingConfigProvider = Depends(get_config_provider),
) -> MenuResponse:
    """Active menu for a location plus the current ordering window."""
    location = find_location_by_id(db, location_id)
    if location is None or not location.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")

    window = config_provider.is_ordering_window_active()
    return MenuResponse(
        location_id=location.id,
        items=[MenuItemRead.model_validate(item) for item in list_menu_for_location(db, location.id)],
        ordering_window=OrderingWindowRead(active=window.active, message=window.message, start=window.start, end=window.end),
    )

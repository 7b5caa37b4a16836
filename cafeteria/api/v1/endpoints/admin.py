"""Admin runtime configuration endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cafeteria.core.security import require_roles
from cafeteria.db.session import get_db, get_read_db
from cafeteria.models.user import User
from cafeteria.schemas.settings import SystemConfigRead, SystemConfigUpdate
from cafeteria.services.settings_service import SystemConfig, get_system_config, update_system_config

router: APIRouter = APIRouter()


def _to_read(config: SystemConfig) -> SystemConfigRead:
    return SystemConfigRead(
        ordering_window_start=config.ordering_window_start,
        ordering_window_end=config.ordering_window_end,
        restricted_role_domain=config.restricted_role_domain,
    )


@router.get("/config", response_model=SystemConfigRead)
def read_config(db: Session = Depends(get_read_db), _: User = Depends(require_roles("ADMIN"))) -> SystemConfigRead:
    return _to_read(get_system_config(db))


@router.put("/config", response_model=SystemConfigRead)
def write_config(
    payload: SystemConfigUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles("ADMIN")),
) -> SystemConfigRead:
    config = update_system_config(
        db,
        ordering_window_start=payload.ordering_window_start,
        ordering_window_end=payload.ordering_window_end,
        restricted_role_domain=payload.restricted_role_domain,
    )
    return _to_read(config)

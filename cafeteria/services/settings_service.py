"""Admin-editable runtime settings and the ordering-window provider."""

import re
from dataclasses import dataclass
from datetime import datetime, time

from sqlalchemy.orm import Session

from cafeteria.core.config import settings
from cafeteria.core.exceptions import ConfigValidationError
from cafeteria.models.app_setting import AppSetting

ORDERING_WINDOW_START_KEY: str = "ordering_window_start"
ORDERING_WINDOW_END_KEY: str = "ordering_window_end"
RESTRICTED_ROLE_DOMAIN_KEY: str = "restricted_role_domain"

HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


@dataclass(frozen=True)
class OrderingWindowStatus:
    active: bool
    message: str | None
    start: time
    end: time


@dataclass(frozen=True)
class SystemConfig:
    ordering_window_start: time
    ordering_window_end: time
    restricted_role_domain: str


def parse_hhmm_time(value: str) -> time:
    """Parse time from HH:MM format string."""
    if not HHMM_PATTERN.match(value or ""):
        raise ValueError(f"Invalid time: {value!r}")
    hour, minute = (int(part) for part in value.split(":"))
    return time(hour=hour, minute=minute)


def is_within_order_window(now_time: time, open_time: time, close_time: time) -> bool:
    """Return True when now is inside same-day ordering window."""
    return open_time <= now_time < close_time


def _read_values(db: Session) -> dict[str, str]:
    rows: list[AppSetting] = (
        db.query(AppSetting)
        .filter(AppSetting.key.in_([ORDERING_WINDOW_START_KEY, ORDERING_WINDOW_END_KEY, RESTRICTED_ROLE_DOMAIN_KEY]))
        .all()
    )
    return {row.key: row.value for row in rows}


def get_system_config(db: Session) -> SystemConfig:
    """Read stored settings with fallback to environment defaults."""
    values: dict[str, str] = _read_values(db)

    try:
        start: time = parse_hhmm_time(values.get(ORDERING_WINDOW_START_KEY, ""))
    except ValueError:
        start = settings.ordering_window_start

    try:
        end: time = parse_hhmm_time(values.get(ORDERING_WINDOW_END_KEY, ""))
    except ValueError:
        end = settings.ordering_window_end

    return SystemConfig(
        ordering_window_start=start,
        ordering_window_end=end,
        restricted_role_domain=values.get(RESTRICTED_ROLE_DOMAIN_KEY, ""),
    )


def _upsert(db: Session, key: str, value: str) -> None:
    setting: AppSetting | None = db.get(AppSetting, key)
    if setting is None:
        db.add(AppSetting(key=key, value=value))
    else:
        setting.value = value


def update_system_config(
    db: Session,
    *,
    ordering_window_start: str | None = None,
    ordering_window_end: str | None = None,
    restricted_role_domain: str | None = None,
) -> SystemConfig:
    """Validate and persist admin configuration changes."""
    current: SystemConfig = get_system_config(db)

    try:
        start = parse_hhmm_time(ordering_window_start) if ordering_window_start else current.ordering_window_start
        end = parse_hhmm_time(ordering_window_end) if ordering_window_end else current.ordering_window_end
    except ValueError as exc:
        raise ConfigValidationError("Invalid time format. Use HH:MM (e.g., 08:00)") from exc

    if end <= start:
        raise ConfigValidationError("End time must be after start time")

    if restricted_role_domain and not restricted_role_domain.startswith("@"):
        raise ConfigValidationError("Restricted domain must start with @ (e.g., @example.com)")

    if ordering_window_start or ordering_window_end:
        _upsert(db, ORDERING_WINDOW_START_KEY, start.strftime("%H:%M"))
        _upsert(db, ORDERING_WINDOW_END_KEY, end.strftime("%H:%M"))
    if restricted_role_domain is not None:
        _upsert(db, RESTRICTED_ROLE_DOMAIN_KEY, restricted_role_domain)

    db.commit()
    return get_system_config(db)


class OrderingConfigProvider:
    """Read-only view of the ordering window consulted on every order."""

    def __init__(self, db: Session, clock=datetime.now) -> None:
        self.db = db
        self.clock = clock

    def is_ordering_window_active(self, now: datetime | None = None) -> OrderingWindowStatus:
        config: SystemConfig = get_system_config(self.db)
        current: datetime = now or self.clock()
        now_time: time = current.time().replace(second=0, microsecond=0)
        start, end = config.ordering_window_start, config.ordering_window_end

        if is_within_order_window(now_time, start, end):
            return OrderingWindowStatus(active=True, message=None, start=start, end=end)

        message = f"Ordering is only available between {start.strftime('%H:%M')} and {end.strftime('%H:%M')}"
        return OrderingWindowStatus(active=False, message=message, start=start, end=end)

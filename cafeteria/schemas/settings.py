"""System configuration schemas."""

from datetime import time

from pydantic import BaseModel


class SystemConfigRead(BaseModel):
    ordering_window_start: time
    ordering_window_end: time
    restricted_role_domain: str


class SystemConfigUpdate(BaseModel):
    ordering_window_start: str | None = None
    ordering_window_end: str | None = None
    restricted_role_domain: str | None = None


class OrderingWindowRead(BaseModel):
    active: bool
    message: str | None
    start: time
    end: time

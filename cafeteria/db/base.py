"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from cafeteria.models import app_setting as _app_setting  # noqa: E402,F401
from cafeteria.models import inventory as _inventory  # noqa: E402,F401
from cafeteria.models import location as _location  # noqa: E402,F401
from cafeteria.models import menu as _menu  # noqa: E402,F401
from cafeteria.models import order as _order  # noqa: E402,F401
from cafeteria.models import user as _user  # noqa: E402,F401

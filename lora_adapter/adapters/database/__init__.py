"""Route map persistence on SQLAlchemy."""

from .manager import DatabaseManager
from .repository import SQLRouteMapRepository

__all__ = ["DatabaseManager", "SQLRouteMapRepository"]

"""In-memory route map repository for tests and local development."""

from typing import Dict

from ..core.errors import RouteNotFoundError
from ..core.interfaces import RouteMapRepository


class InMemoryRouteMapRepository(RouteMapRepository):
    """Route map held in a plain dict.

    Each instance is its own namespace. Operations never await, so they are
    atomic with respect to other coroutines on the same event loop.
    """

    def __init__(self):
        self.routes: Dict[str, str] = {}

    async def save(self, key: str, value: str) -> None:
        self.routes[key] = value

    async def get(self, key: str) -> str:
        try:
            return self.routes[key]
        except KeyError:
            raise RouteNotFoundError(key) from None

    async def remove(self, value: str) -> None:
        for key in [k for k, v in self.routes.items() if v == value]:
            del self.routes[key]

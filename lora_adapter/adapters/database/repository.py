"""SQL-backed route map repository."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import InterfaceError, OperationalError

from ...core.enums import RouteNamespace
from ...core.errors import RouteNotFoundError, StoreUnavailableError
from ...core.interfaces import RouteMapRepository
from .manager import DatabaseManager
from .models import RouteMap as RouteMapModel

logger = logging.getLogger(__name__)

# Dialect-specific INSERT constructs supporting ON CONFLICT
UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


@asynccontextmanager
async def _store_errors(operation: str) -> AsyncGenerator[None, None]:
    """Surface connection-level database failures as StoreUnavailableError."""
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as e:
        logger.error(f"Route map store unavailable during {operation}: {e}")
        raise StoreUnavailableError(f"route map store unavailable: {e}") from e


class SQLRouteMapRepository(RouteMapRepository):
    """Route map stored in the route_maps table, scoped to one namespace."""

    def __init__(self, database: DatabaseManager, namespace: RouteNamespace):
        self.database = database
        self.namespace = namespace

    def _upsert(self, key: str, value: str):
        """Single-statement INSERT ... ON CONFLICT DO UPDATE for the route."""
        dialect = self.database.dialect_name
        insert = UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect: {dialect}")

        stmt = insert(RouteMapModel).values(
            namespace=self.namespace.value,
            external_id=key,
            internal_id=value,
        )
        return stmt.on_conflict_do_update(
            index_elements=[RouteMapModel.namespace, RouteMapModel.external_id],
            set_={
                "internal_id": stmt.excluded.internal_id,
                "updated_at": func.now(),
            },
        )

    async def save(self, key: str, value: str) -> None:
        """Insert or overwrite the route for key.

        Concurrent saves of the same key all succeed; the last one to commit wins.
        """
        async with _store_errors("save"):
            stmt = self._upsert(key, value)
            async with self.database.get_session() as session:
                await session.execute(stmt)
                await session.commit()

        logger.debug(f"Saved {self.namespace.value} route map {key} -> {value}")

    async def get(self, key: str) -> str:
        """Get the internal identifier routed from key."""
        async with _store_errors("get"):
            async with self.database.get_session() as session:
                result = await session.execute(
                    select(RouteMapModel.internal_id).where(
                        RouteMapModel.namespace == self.namespace.value,
                        RouteMapModel.external_id == key,
                    )
                )
                value = result.scalar_one_or_none()

        if value is None:
            raise RouteNotFoundError(key)
        return value

    async def remove(self, value: str) -> None:
        """Delete all routes pointing at value."""
        async with _store_errors("remove"):
            async with self.database.get_session() as session:
                result = await session.execute(
                    delete(RouteMapModel).where(
                        RouteMapModel.namespace == self.namespace.value,
                        RouteMapModel.internal_id == value,
                    )
                )
                await session.commit()

        logger.debug(
            f"Removed {result.rowcount} {self.namespace.value} route map(s) for {value}"
        )

"""Tests for the in-memory and SQL route map repositories."""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from lora_adapter.core.enums import RouteNamespace
from lora_adapter.core.errors import RouteNotFoundError, StoreUnavailableError
from lora_adapter.adapters.database import DatabaseManager, SQLRouteMapRepository
from lora_adapter.adapters.database.models import RouteMap
from lora_adapter.adapters.memory import InMemoryRouteMapRepository


class TestInMemoryRouteMapRepository:
    """Contract tests against the dict-backed repository."""

    @pytest.mark.asyncio
    async def test_save_and_get(self):
        repo = InMemoryRouteMapRepository()

        await repo.save("AA:BB", "t1")

        assert await repo.get("AA:BB") == "t1"

    @pytest.mark.asyncio
    async def test_get_missing_key(self):
        repo = InMemoryRouteMapRepository()

        with pytest.raises(RouteNotFoundError) as exc_info:
            await repo.get("AA:BB")
        assert exc_info.value.key == "AA:BB"

    @pytest.mark.asyncio
    async def test_save_overwrites(self):
        repo = InMemoryRouteMapRepository()

        await repo.save("AA:BB", "t1")
        await repo.save("AA:BB", "t2")
        await repo.save("AA:BB", "t2")

        assert repo.routes == {"AA:BB": "t2"}

    @pytest.mark.asyncio
    async def test_remove_by_value(self):
        repo = InMemoryRouteMapRepository()
        await repo.save("AA:BB", "t1")
        await repo.save("CC:DD", "t1")
        await repo.save("EE:FF", "t2")

        await repo.remove("t1")

        assert repo.routes == {"EE:FF": "t2"}

    @pytest.mark.asyncio
    async def test_remove_unknown_value_is_noop(self):
        repo = InMemoryRouteMapRepository()
        await repo.save("AA:BB", "t1")

        await repo.remove("t9")

        assert repo.routes == {"AA:BB": "t1"}


@pytest.mark.integration
class TestSQLRouteMapRepository:
    """SQL repository against a temporary sqlite database."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, sql_things_repo):
        await sql_things_repo.save("AA:BB", "t1")

        assert await sql_things_repo.get("AA:BB") == "t1"

    @pytest.mark.asyncio
    async def test_get_missing_key(self, sql_things_repo):
        with pytest.raises(RouteNotFoundError):
            await sql_things_repo.get("AA:BB")

    @pytest.mark.asyncio
    async def test_save_overwrites_single_row(self, sql_things_repo, db_manager):
        await sql_things_repo.save("AA:BB", "t1")
        await sql_things_repo.save("AA:BB", "t2")

        assert await sql_things_repo.get("AA:BB") == "t2"
        async with db_manager.get_session() as session:
            result = await session.execute(select(RouteMap))
            rows = result.scalars().all()
        assert [(r.namespace, r.external_id, r.internal_id) for r in rows] == [
            ("thing", "AA:BB", "t2")
        ]

    @pytest.mark.asyncio
    async def test_concurrent_saves_of_new_key(self, sql_things_repo, db_manager):
        values = [f"t{i}" for i in range(8)]

        results = await asyncio.gather(
            *[sql_things_repo.save("AA:BB", value) for value in values],
            return_exceptions=True,
        )

        assert results == [None] * len(values)
        assert await sql_things_repo.get("AA:BB") in values
        async with db_manager.get_session() as session:
            result = await session.execute(select(RouteMap))
            assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_unsupported_dialect_is_a_programming_error(self, sql_things_repo, monkeypatch):
        monkeypatch.setattr(
            DatabaseManager, "dialect_name", property(lambda self: "oracle")
        )

        with pytest.raises(RuntimeError, match="Unsupported database dialect"):
            await sql_things_repo.save("AA:BB", "t1")

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self, sql_things_repo, sql_channels_repo):
        await sql_things_repo.save("shared", "t1")
        await sql_channels_repo.save("shared", "c1")

        assert await sql_things_repo.get("shared") == "t1"
        assert await sql_channels_repo.get("shared") == "c1"

        await sql_things_repo.remove("t1")

        with pytest.raises(RouteNotFoundError):
            await sql_things_repo.get("shared")
        assert await sql_channels_repo.get("shared") == "c1"

    @pytest.mark.asyncio
    async def test_remove_by_internal_id(self, sql_channels_repo):
        await sql_channels_repo.save("app1", "c1")
        await sql_channels_repo.save("app2", "c2")

        await sql_channels_repo.remove("c1")

        with pytest.raises(RouteNotFoundError):
            await sql_channels_repo.get("app1")
        assert await sql_channels_repo.get("app2") == "c2"

    @pytest.mark.asyncio
    async def test_remove_unknown_is_noop(self, sql_channels_repo):
        await sql_channels_repo.save("app1", "c1")

        await sql_channels_repo.remove("missing")

        assert await sql_channels_repo.get("app1") == "c1"

    @pytest.mark.asyncio
    async def test_connection_failure_is_store_unavailable(self, sql_things_repo, monkeypatch):
        def broken_session():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(sql_things_repo.database, "get_session", broken_session)

        with pytest.raises(StoreUnavailableError):
            await sql_things_repo.get("AA:BB")
        with pytest.raises(StoreUnavailableError):
            await sql_things_repo.save("AA:BB", "t1")
        with pytest.raises(StoreUnavailableError):
            await sql_things_repo.remove("t1")

    @pytest.mark.asyncio
    async def test_uninitialized_manager_is_a_programming_error(self, test_config):
        repo = SQLRouteMapRepository(DatabaseManager(test_config), RouteNamespace.THING)

        with pytest.raises(RuntimeError, match="not initialized"):
            await repo.get("AA:BB")

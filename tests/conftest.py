"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from travel_itinerary.config import Settings
from travel_itinerary.db.context import RequestContext
from travel_itinerary.db.engine import create_schema, create_session_factory
from travel_itinerary.db.inmemory import create_inmemory_tables
from travel_itinerary.db.itinerary import TableItineraryRepository
from travel_itinerary.db.sql_tables import create_sql_tables
from travel_itinerary.db.tables import TableContext


@pytest.fixture
def settings() -> Settings:
    """Settings with default table names."""
    return Settings()


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine on a temporary SQLite file with the schema in place."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tables.db'}",
        poolclass=NullPool,
        echo=False,
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def tables(
    request: pytest.FixtureRequest, settings: Settings, tmp_path: Path
) -> AsyncGenerator[TableContext, None]:
    """Table context over each backend.

    Usage:
        @pytest.mark.asyncio
        async def test_something(tables):
            await tables.trips.add_entity(...)
    """
    if request.param == "memory":
        yield create_inmemory_tables(settings)
        return

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'repository.db'}",
        poolclass=NullPool,
        echo=False,
    )
    await create_schema(engine)

    yield create_sql_tables(create_session_factory(engine), settings)

    await engine.dispose()


@pytest_asyncio.fixture
async def repo(tables: TableContext, settings: Settings) -> TableItineraryRepository:
    """Itinerary repository over the parametrized backend."""
    return TableItineraryRepository(tables, settings=settings)


@pytest.fixture
def owner() -> RequestContext:
    return RequestContext(user_id="user-owner", user_email="owner@example.com")


@pytest.fixture
def editor() -> RequestContext:
    return RequestContext(user_id="user-editor", user_email="Editor@Example.com")


@pytest.fixture
def viewer() -> RequestContext:
    return RequestContext(user_id="user-viewer", user_email="viewer@example.com")


@pytest.fixture
def stranger() -> RequestContext:
    return RequestContext(user_id="user-stranger", user_email="stranger@example.com")

"""Database engine, session factory and table store selection."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from travel_itinerary.config import Settings, get_settings
from travel_itinerary.db.inmemory import create_inmemory_tables
from travel_itinerary.db.models import Base
from travel_itinerary.db.sql_tables import create_sql_tables
from travel_itinerary.db.tables import TableContext

_ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
}

_SYNC_DRIVERS = {
    "sqlite+aiosqlite://": "sqlite://",
    "postgresql+asyncpg://": "postgresql://",
}


def _swap_driver(database_url: str, drivers: dict[str, str]) -> str:
    for prefix, replacement in drivers.items():
        if database_url.startswith(prefix):
            return database_url.replace(prefix, replacement, 1)
    return database_url


def async_database_url(database_url: str) -> str:
    """Point a plain PostgreSQL URL at the asyncpg driver."""
    return _swap_driver(database_url, _ASYNC_DRIVERS)


def sync_database_url(database_url: str) -> str:
    """Strip async drivers for tools that run on sync SQLAlchemy (alembic)."""
    return _swap_driver(database_url, _SYNC_DRIVERS)


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create async SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    if not settings.database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string. "
            "Please configure the database_url setting."
        )

    return create_async_engine(
        async_database_url(settings.database_url), pool_pre_ping=True, echo=False
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create sessionmaker for short-lived async sessions.

    Args:
        engine: Async SQLAlchemy engine

    Returns:
        Sessionmaker bound to the engine
    """
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the table store schema if it does not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def create_tables_from_settings(settings: Settings | None = None) -> TableContext:
    """Table context for the configured store.

    Without DATABASE_URL the tables live in process memory.
    """
    settings = settings or get_settings()
    if not settings.database_url:
        return create_inmemory_tables(settings)

    engine = create_async_engine_from_settings(settings)
    return create_sql_tables(create_session_factory(engine), settings)

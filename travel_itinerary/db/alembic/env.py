from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from travel_itinerary.config import get_settings  # noqa: E402
from travel_itinerary.db.engine import sync_database_url  # noqa: E402
from travel_itinerary.db.models import Base  # noqa: E402

target_metadata = Base.metadata

# Same DATABASE_URL as the application, minus the async driver
config.set_main_option("sqlalchemy.url", sync_database_url(get_settings().database_url or ""))


def run_migrations_offline() -> None:
    """Emit the table store DDL as SQL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

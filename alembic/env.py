"""Alembic environment for the HeyDoc schema.

The database URL is taken from, in order:
    1. ``alembic -x db_url=postgresql://...``
    2. ``ALEMBIC_DATABASE_URL`` or ``DATABASE_URL`` (``scripts/migrate.py`` sets the latter)
    3. ``Settings.DATABASE_URL`` from the application config

Async driver suffixes are swapped for their sync equivalents, so the same
``postgresql+asyncpg://`` URL the service uses also works here.

Offline mode (``--sql``) renders the DDL without connecting.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from src.app.db.session import Base  # noqa: E402
from src.app import models  # noqa: E402, F401  registers every table on Base.metadata

SYNC_DRIVERS = {"+asyncpg": "+psycopg2", "+aiosqlite": ""}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_database_url(url: str) -> str:
    for async_driver, sync_driver in SYNC_DRIVERS.items():
        url = url.replace(async_driver, sync_driver)
    return url


def resolve_database_url() -> str:
    explicit = (
        context.get_x_argument(as_dictionary=True).get("db_url")
        or os.environ.get("ALEMBIC_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
    )
    if explicit:
        return sync_database_url(explicit)

    try:
        from src.app.core.config import get_settings

        return sync_database_url(get_settings().DATABASE_URL)
    except Exception as exc:
        raise RuntimeError(
            "No database URL for migrations. Pass -x db_url=..., set "
            "ALEMBIC_DATABASE_URL / DATABASE_URL, or configure the app settings "
            f"(settings error: {exc})"
        ) from exc


config.set_main_option("sqlalchemy.url", resolve_database_url())


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout for review."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                compare_server_default=True,
                # SQLite cannot ALTER most constraints in place
                render_as_batch=connection.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

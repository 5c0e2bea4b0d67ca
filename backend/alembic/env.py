"""Alembic environment — runs Parley migrations on the application's own engine settings.

Design Decisions:
    - The URL comes from parley.config.Settings (same asyncpg rewrite as the
      app); `alembic -x url=...` overrides it for one-off runs
    - SQLite targets use batch mode so ALTERs work on throwaway dev databases
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from alembic import context

from parley.config import get_settings
from parley.db.base import Base
import parley.models  # noqa: F401  (registers identities, messages, known_relations)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get(
        "url", get_settings().database_url,
    )


def _configure(dialect: str, **kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        render_as_batch=dialect == "sqlite",
        **kwargs,
    )


def _migrate(connection: Connection) -> None:
    _configure(connection.dialect.name, connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online() -> None:
    engine = create_async_engine(_database_url(), poolclass=NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(_migrate)
    await engine.dispose()


if context.is_offline_mode():
    url = _database_url()
    _configure(
        make_url(url).get_backend_name(),
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    asyncio.run(_migrate_online())

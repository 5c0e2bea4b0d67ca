"""Infrastructure fixtures — fresh SQLite database per test.

Design Decisions:
    - File-backed SQLite under tmp_path on the default pool, so concurrent
      sessions each get their own connection while sharing one database
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

import parley.models  # noqa: F401
from parley.db.base import Base
from parley.infrastructure.database import DatabaseSessionManager
from parley.infrastructure.sql_record_store import SqlRecordStore


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/test.db", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db(test_engine):
    return DatabaseSessionManager(test_engine)


@pytest.fixture
def sql_store(db):
    return SqlRecordStore(db)

from __future__ import annotations

import pytest
from sqlalchemy import event, text

from pairplay.core.integration_db_safety import assert_safe_integration_db
from pairplay.db.models import GameSlot, Pairing, PairingStats, Question  # noqa: F401
from pairplay.db.models.base import Base
from pairplay.db.session import engine

TRUNCATE_TABLES = (
    "pairing_stats",
    "game_slots",
    "questions",
    "pairings",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} CASCADE"

IS_SQLITE = engine.dialect.name == "sqlite"

if IS_SQLITE:
    # pysqlite defers BEGIN; IMMEDIATE takes the write lock at transaction start.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    assert_safe_integration_db(str(engine.url))


@pytest.fixture(autouse=True)
async def cleanup_db() -> None:
    # Dispose pooled connections between tests to avoid cross-event-loop reuse.
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Integration database is unavailable: {exc}")

    async with engine.begin() as conn:
        if IS_SQLITE:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        else:
            await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()

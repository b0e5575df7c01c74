# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the master database pool."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from g4a_portal.core.config import Settings
from g4a_portal.infrastructure.database import connection
from g4a_portal.infrastructure.database.connection import (
    DatabaseError,
    MasterDatabase,
    MasterDatabaseNotInitializedError,
    check_master_database_connection,
    close_master_database,
    get_master_database,
    get_master_session,
    init_master_database,
)


def create_mock_engine(conn=None):
    """Create a mock engine whose connect() yields conn."""
    engine = MagicMock()
    connect_cm = MagicMock()
    connect_cm.__aenter__ = AsyncMock(return_value=conn or MagicMock(execute=AsyncMock()))
    connect_cm.__aexit__ = AsyncMock(return_value=False)
    engine.connect.return_value = connect_cm
    engine.dispose = AsyncMock()
    return engine


def attach_session(master: MasterDatabase):
    """Replace the session factory of master with one yielding a mock session."""
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(return_value=session)
    session_cm.__aexit__ = AsyncMock(return_value=False)
    master._sessions = MagicMock(return_value=session_cm)
    return session


@pytest.fixture
def settings() -> Settings:
    """Settings with a known master database."""
    settings = Settings()
    settings.master_db.database = "g4a_master_test"
    settings.master_db.pool_size = 3
    settings.master_db.max_overflow = 4
    return settings


@pytest.fixture
def engine_factory():
    """Engine factory returning a fresh mock engine per call."""
    return MagicMock(side_effect=lambda *args, **kwargs: create_mock_engine())


@pytest.fixture(autouse=True)
def reset_master():
    """Forget the process-wide master database after each test."""
    yield
    connection._master = None


@pytest.mark.unit
class TestMasterDatabase:
    """Tests for MasterDatabase."""

    def test_engine_uses_pool_settings(self, settings, engine_factory) -> None:
        master = MasterDatabase(settings, engine_factory)

        args, kwargs = engine_factory.call_args
        assert args == (settings.master_db.url,)
        assert kwargs["pool_size"] == 3
        assert kwargs["max_overflow"] == 4
        assert kwargs["pool_pre_ping"] is True
        assert master.database == "g4a_master_test"

    @pytest.mark.asyncio
    async def test_session_commits_on_success(self, settings, engine_factory) -> None:
        master = MasterDatabase(settings, engine_factory)
        session = attach_session(master)

        async with master.session() as active:
            assert active is session

        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_wraps_database_errors(self, settings, engine_factory) -> None:
        master = MasterDatabase(settings, engine_factory)
        session = attach_session(master)

        with pytest.raises(DatabaseError) as exc_info:
            async with master.session():
                raise OperationalError("SELECT 1", {}, Exception("connection reset"))

        assert exc_info.value.operation == "session"
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_reraises_other_errors(self, settings, engine_factory) -> None:
        master = MasterDatabase(settings, engine_factory)
        session = attach_session(master)

        with pytest.raises(ValueError):
            async with master.session():
                raise ValueError("bad input")

        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ping(self, settings) -> None:
        conn = MagicMock(execute=AsyncMock())
        master = MasterDatabase(settings, MagicMock(return_value=create_mock_engine(conn)))

        assert await master.ping() is True
        conn.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ping_unreachable(self, settings) -> None:
        conn = MagicMock(execute=AsyncMock(side_effect=OSError("refused")))
        master = MasterDatabase(settings, MagicMock(return_value=create_mock_engine(conn)))

        assert await master.ping() is False


@pytest.mark.unit
class TestProcessMasterDatabase:
    """Tests for the process-wide master database functions."""

    @pytest.mark.asyncio
    async def test_not_initialized(self) -> None:
        with pytest.raises(MasterDatabaseNotInitializedError):
            get_master_database()

        with pytest.raises(DatabaseError):
            async with get_master_session():
                pass

        assert await check_master_database_connection() is False

    @pytest.mark.asyncio
    async def test_init_and_close(self, settings, engine_factory) -> None:
        master = await init_master_database(settings, engine_factory)

        assert get_master_database() is master
        assert await check_master_database_connection() is True

        await close_master_database()

        master.engine.dispose.assert_awaited_once()
        assert connection._master is None
        await close_master_database()

    @pytest.mark.asyncio
    async def test_reinit_disposes_previous_pool(self, settings, engine_factory) -> None:
        first = await init_master_database(settings, engine_factory)
        second = await init_master_database(settings, engine_factory)

        first.engine.dispose.assert_awaited_once()
        assert get_master_database() is second

    @pytest.mark.asyncio
    async def test_invalid_url_raises(self, settings) -> None:
        factory = MagicMock(side_effect=ValueError("bad url"))

        with pytest.raises(DatabaseError) as exc_info:
            await init_master_database(settings, factory)

        assert exc_info.value.operation == "open"
        assert connection._master is None

    @pytest.mark.asyncio
    async def test_get_master_session_delegates(self, settings, engine_factory) -> None:
        master = await init_master_database(settings, engine_factory)
        session = attach_session(master)

        async with get_master_session() as active:
            assert active is session

        session.commit.assert_awaited_once()

"""database 模組單元測試。"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from linebot_studio import database


@pytest.fixture(autouse=True)
def reset_db_pool() -> None:
    """每個測試前後重置全域連線池狀態。"""
    database._pool = None
    yield
    database._pool = None


@pytest.mark.asyncio
async def test_register_json_codecs() -> None:
    conn = AsyncMock()

    await database._register_json_codecs(conn)

    registered = [call.args[0] for call in conn.set_type_codec.await_args_list]
    assert registered == ["jsonb", "json"]


@pytest.mark.asyncio
async def test_init_db_pool_uses_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    pool = AsyncMock()
    mock_create_pool = AsyncMock(return_value=pool)
    monkeypatch.setattr(database.asyncpg, "create_pool", mock_create_pool)
    monkeypatch.setattr(database.settings, "db_pool_max_size", 3)

    await database.init_db_pool()
    # 已初始化時不重建
    await database.init_db_pool()

    assert database._pool is pool
    mock_create_pool.assert_awaited_once()
    kwargs = mock_create_pool.await_args.kwargs
    assert kwargs["max_size"] == 3
    assert kwargs["init"] is database._register_json_codecs


@pytest.mark.asyncio
async def test_close_db_pool_closes_pool_and_clears_global() -> None:
    pool = AsyncMock()
    database._pool = pool

    await database.close_db_pool()

    pool.close.assert_awaited_once()
    assert database._pool is None


def test_get_pool_raises_when_uninitialized() -> None:
    with pytest.raises(RuntimeError, match="Database pool not initialized"):
        database.get_pool()


@pytest.mark.asyncio
async def test_get_connection_yields_acquired_connection() -> None:
    conn = object()

    class _AcquireCM:
        async def __aenter__(self) -> Any:
            return conn

        async def __aexit__(self, *_: Any) -> None:
            return None

    class _Pool:
        def acquire(self) -> _AcquireCM:
            return _AcquireCM()

    database._pool = _Pool()  # type: ignore[assignment]

    async with database.get_connection() as got:
        assert got is conn


@pytest.mark.asyncio
async def test_fetch_document(mock_db_connection) -> None:
    conn, _ctx = mock_db_connection

    assert await database.fetch_document(conn, "users/o/bots/missing") is None

    conn.fetchrow.return_value = {"data": {"name": "Bot"}}
    assert await database.fetch_document(conn, "users/o/bots/b") == {"name": "Bot"}
    query, path = conn.fetchrow.await_args.args
    assert "bot_documents" in query
    assert path == "users/o/bots/b"

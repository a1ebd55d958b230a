"""Bot 設定文件庫的連線管理

設定文件存放在單一資料表：

    CREATE TABLE bot_documents (
        path TEXT PRIMARY KEY,      -- users/{owner_id}/bots/{bot_id}
        data JSONB NOT NULL
    );

連線池在應用程式啟動時建立，webhook 處理中只借用連線，不重新初始化。
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from .config import settings

DOCUMENT_TABLE = "bot_documents"

_pool: asyncpg.Pool | None = None


async def _register_json_codecs(conn: asyncpg.Connection) -> None:
    """JSON/JSONB 欄位直接以 dict 讀寫"""
    for type_name in ("jsonb", "json"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


async def init_db_pool() -> None:
    """建立連線池（應用程式啟動時呼叫一次）"""
    global _pool
    if _pool is not None:
        return
    _pool = await asyncpg.create_pool(
        host=settings.db_host,
        port=settings.db_port,
        user=settings.db_user,
        password=settings.db_password,
        database=settings.db_name,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout,
        init=_register_json_codecs,
    )


async def close_db_pool() -> None:
    """關閉連線池"""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized")
    return _pool


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """從連線池借用一條連線"""
    async with get_pool().acquire() as conn:
        yield conn


async def fetch_document(conn: asyncpg.Connection, path: str) -> Any | None:
    """讀取單一文件的 data 欄位，不存在時回傳 None"""
    row = await conn.fetchrow(
        f"SELECT data FROM {DOCUMENT_TABLE} WHERE path = $1",
        path,
    )
    if row is None:
        return None
    return row["data"]

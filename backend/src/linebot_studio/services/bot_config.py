"""Bot 設定讀取

Webhook 每次呼叫時依 (owner_id, bot_id) 讀取一次 Bot 設定文件。
文件存放在 bot_documents 資料表（path TEXT PRIMARY KEY, data JSONB），
path 格式為 users/{owner_id}/bots/{bot_id}。

此模組只讀取，不寫入；寫入由管理介面負責。
"""

import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable

import asyncpg

from ..database import fetch_document, get_connection
from ..models.bot import BotConfig, document_path

logger = logging.getLogger("bot_config")

ConnectionFactory = Callable[[], AbstractAsyncContextManager[asyncpg.Connection]]


class BotConfigResolver:
    """依 owner / bot ID 取得 BotConfig

    連線工廠在建構時注入（預設為共用連線池），
    測試時可以替換成假的 context manager。
    """

    def __init__(self, connection_factory: ConnectionFactory = get_connection):
        self._connection_factory = connection_factory

    async def resolve(self, owner_id: str, bot_id: str) -> BotConfig | None:
        """讀取 Bot 設定

        Returns:
            BotConfig，文件不存在時回傳 None
        """
        path = document_path(owner_id, bot_id)
        async with self._connection_factory() as conn:
            data = await fetch_document(conn, path)

        if data is None:
            logger.info(f"Bot 設定不存在: {path}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Bot 設定格式錯誤: {path}")
            return None

        return BotConfig.from_document(owner_id, bot_id, data)

"""Line Bot 客戶端

每個 Bot 有自己的 channel access token，
因此共用的 AsyncApiClient 以 token 為 key 快取，每個 token 只建立一次。
"""

import logging

from linebot.v3.messaging import (
    AsyncApiClient,
    AsyncMessagingApi,
    AsyncMessagingApiBlob,
    Configuration,
)

logger = logging.getLogger(__name__)

# access token -> AsyncApiClient，避免每次呼叫都建立新的 aiohttp session
_shared_api_clients: dict[str, AsyncApiClient] = {}


def get_line_config(access_token: str) -> Configuration:
    """取得 Line API 設定

    Args:
        access_token: Bot 的 channel access token
    """
    return Configuration(access_token=access_token)


def _get_shared_api_client(access_token: str) -> AsyncApiClient:
    """取得共用的 AsyncApiClient（每個 token 一個）"""
    client = _shared_api_clients.get(access_token)
    if client is None:
        client = AsyncApiClient(get_line_config(access_token))
        _shared_api_clients[access_token] = client
    return client


async def get_messaging_api(access_token: str) -> AsyncMessagingApi:
    """取得 Messaging API 客戶端

    Returns:
        AsyncMessagingApi 客戶端
    """
    return AsyncMessagingApi(_get_shared_api_client(access_token))


async def get_messaging_blob_api(access_token: str) -> AsyncMessagingApiBlob:
    """取得 Messaging API Blob 客戶端（rich menu 圖片上傳）"""
    return AsyncMessagingApiBlob(_get_shared_api_client(access_token))


async def close_line_clients() -> None:
    """關閉所有共用的 Line API 客戶端，應在應用程式關閉時呼叫"""
    for token, client in list(_shared_api_clients.items()):
        try:
            await client.close()
        except Exception as e:
            logger.warning(f"關閉 Line API 客戶端失敗: {e}")
        _shared_api_clients.pop(token, None)

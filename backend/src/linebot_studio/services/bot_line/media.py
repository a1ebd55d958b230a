"""Line 媒體內容下載與分類

非文字訊息（圖片、音訊、影片、檔案）透過 LINE content API 下載，
並依宣告的訊息類型決定 MIME 類型，作為 inline data 附加到 AI 請求。
"""

import logging
from pathlib import Path

import httpx

from ...config import settings
from ..bot.message import InboundEvent, MediaPayload
from ..errors import MediaFetchError
from .constants import (
    DEFAULT_FILE_MIME,
    FILE_EXTENSION_MIME,
    MESSAGE_TYPE_LABELS,
    MESSAGE_TYPE_MIME,
)

logger = logging.getLogger("linebot.media")


def classify_mime(message_type: str, file_name: str | None = None) -> str:
    """依訊息類型判斷 MIME 類型（不檢查內容 bytes）

    file 類型依副檔名判斷，無法辨識時為 application/octet-stream。
    """
    if message_type in MESSAGE_TYPE_MIME:
        return MESSAGE_TYPE_MIME[message_type]
    if message_type == "file" and file_name:
        ext = Path(file_name).suffix.lower()
        return FILE_EXTENSION_MIME.get(ext, DEFAULT_FILE_MIME)
    return DEFAULT_FILE_MIME


async def download_line_content(
    message_id: str,
    access_token: str,
    http_client: httpx.AsyncClient | None = None,
) -> bytes:
    """從 Line API 下載訊息內容

    Args:
        message_id: Line 訊息 ID
        access_token: Bot 的 channel access token
        http_client: 指定的 httpx client（測試用），不指定則建立新的

    Raises:
        MediaFetchError: HTTP 錯誤、連線失敗或內容為空
    """
    url = f"{settings.line_data_api_base}/v2/bot/message/{message_id}/content"
    headers = {"Authorization": f"Bearer {access_token}"}

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=settings.line_media_timeout) as client:
                response = await client.get(url, headers=headers)
        else:
            response = await http_client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"下載 Line 內容失敗 {message_id}: {e}")
        raise MediaFetchError(message_id, type(e).__name__) from e

    if response.status_code != 200:
        logger.error(f"Line API 回應錯誤 {response.status_code}: {response.text[:200]}")
        raise MediaFetchError(message_id, f"HTTP {response.status_code}")

    if not response.content:
        raise MediaFetchError(message_id, "empty content")

    return response.content


async def resolve_media(
    event: InboundEvent,
    access_token: str,
    http_client: httpx.AsyncClient | None = None,
) -> MediaPayload:
    """下載事件的媒體內容並分類

    Raises:
        MediaFetchError: 下載失敗
    """
    if not event.message_id:
        raise MediaFetchError("", "missing message id")

    message_type = event.message_type.value if event.message_type else ""
    data = await download_line_content(event.message_id, access_token, http_client)
    mime_type = classify_mime(message_type, event.file_name)
    logger.info(f"媒體下載完成: {event.message_id} ({mime_type}, {len(data)} bytes)")
    return MediaPayload(data=data, mime_type=mime_type)


def media_prompt(message_type: str, file_name: str | None = None) -> str:
    """媒體訊息成功下載時的使用者提示"""
    label = MESSAGE_TYPE_LABELS.get(message_type, "ファイル")
    if file_name:
        return f"ユーザーが{label}「{file_name}」を送信しました。内容を確認して返答してください。"
    return f"ユーザーが{label}を送信しました。内容を確認して返答してください。"


def media_failure_prompt(message_type: str, error: Exception | None = None) -> str:
    """媒體下載失敗時的替代提示

    讓 AI 仍能回覆（說明無法讀取內容），而不是整個事件中止。
    """
    label = MESSAGE_TYPE_LABELS.get(message_type, "ファイル")
    reason = ""
    if isinstance(error, MediaFetchError):
        reason = f"（理由: {error.reason}）"
    return (
        f"ユーザーが{label}を送信しましたが、サーバー側でデータを取得できませんでした{reason}。"
        f"{label}の内容を確認できなかったことをユーザーに丁寧に伝え、"
        "もう一度送信するか、テキストで内容を教えてもらうようお願いしてください。"
    )

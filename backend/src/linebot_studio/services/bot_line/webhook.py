"""Webhook 簽章驗證與事件解析

事件以 line-bot-sdk 的 webhook models 解析，再轉成分派器使用的 InboundEvent。
"""

import hashlib
import hmac
import base64
import logging

from linebot.v3.webhooks import (
    AudioMessageContent,
    Event,
    FileMessageContent,
    ImageMessageContent,
    MessageEvent,
    TextMessageContent,
    VideoMessageContent,
)

from ..bot.message import EventKind, InboundEvent, MessageType

logger = logging.getLogger("linebot")


def verify_signature(body: bytes, signature: str, channel_secret: str) -> bool:
    """驗證 Line Webhook 簽章

    必須使用原始 request body，重新序列化過的 JSON 會得到不同的簽章。

    Args:
        body: 原始請求內容
        signature: X-Line-Signature header
        channel_secret: Bot 的 channel secret

    Returns:
        簽章是否正確
    """
    if not channel_secret:
        logger.warning("Line channel secret 未設定")
        return False
    if not signature:
        return False

    hash_value = hmac.new(
        channel_secret.encode("utf-8"),
        body,
        hashlib.sha256,
    ).digest()
    expected_signature = base64.b64encode(hash_value)

    # header 可能含非 ASCII 字元，以 bytes 比較
    return hmac.compare_digest(signature.encode("utf-8"), expected_signature)


def check_webhook_signature(
    body: bytes,
    signature: str | None,
    channel_secret: str,
    strict: bool = False,
) -> bool:
    """檢查簽章並決定是否繼續處理

    非 strict 模式下簽章不符只記錄警告（LINE 的連線驗證與重送不應被擋下）；
    strict 模式下簽章缺少或不符都會回傳 False。

    Returns:
        是否繼續處理事件
    """
    if not signature:
        if strict:
            logger.warning("Webhook 缺少簽章，strict 模式下略過處理")
            return False
        logger.info("Webhook 缺少簽章")
        return True

    if verify_signature(body, signature, channel_secret):
        logger.debug("Webhook 驗證成功")
        return True

    if strict:
        logger.warning("Webhook 簽章驗證失敗，strict 模式下略過處理")
        return False

    logger.warning("Webhook 簽章驗證失敗（非 strict 模式，繼續處理）")
    return True


def extract_events(payload) -> list[dict] | None:
    """取出 payload 的 events 陣列

    Returns:
        事件列表；payload 不是物件或 events 不是陣列時回傳 None
    """
    if not isinstance(payload, dict):
        return None
    events = payload.get("events", [])
    if not isinstance(events, list):
        return None
    return events


def to_inbound_event(event: Event | None) -> InboundEvent:
    """Line webhook 事件轉為 InboundEvent

    只有文字、圖片、影片、音訊、檔案訊息會成為 MESSAGE，
    其他事件與訊息類型（貼圖、位置等）都是 OTHER。
    """
    if not isinstance(event, MessageEvent):
        return InboundEvent(kind=EventKind.OTHER, raw_type=getattr(event, "type", "") or "")

    source = event.source
    user_id = source.user_id if hasattr(source, "user_id") else None
    message = event.message

    text = None
    file_name = None
    if isinstance(message, TextMessageContent):
        message_type = MessageType.TEXT
        text = message.text
    elif isinstance(message, ImageMessageContent):
        message_type = MessageType.IMAGE
    elif isinstance(message, VideoMessageContent):
        message_type = MessageType.VIDEO
    elif isinstance(message, AudioMessageContent):
        message_type = MessageType.AUDIO
    elif isinstance(message, FileMessageContent):
        message_type = MessageType.FILE
        file_name = message.file_name
    else:
        logger.debug(f"未處理的訊息類型: {type(message).__name__}")
        return InboundEvent(kind=EventKind.OTHER, raw_type=event.type, source_user_id=user_id)

    return InboundEvent(
        kind=EventKind.MESSAGE,
        raw_type=event.type,
        message_type=message_type,
        reply_token=event.reply_token,
        source_user_id=user_id,
        text=text,
        message_id=message.id,
        file_name=file_name,
    )


def parse_events(raw_events: list) -> list[InboundEvent]:
    """逐一解析事件，單一事件格式錯誤只會讓該事件成為 OTHER"""
    events = []
    for raw in raw_events:
        try:
            events.append(to_inbound_event(Event.from_dict(raw)))
        except (ValueError, KeyError, TypeError) as e:
            raw_type = raw.get("type") if isinstance(raw, dict) else None
            logger.info(f"無法解析的事件 type={raw_type}: {type(e).__name__}")
            events.append(InboundEvent(kind=EventKind.OTHER, raw_type=str(raw_type or "")))
    return events

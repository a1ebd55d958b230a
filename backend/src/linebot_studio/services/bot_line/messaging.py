"""Line Bot 訊息發送

將 RichReply 轉為 LINE 原生訊息（TextMessage / FlexMessage），
並透過 reply token 回覆。
"""

import logging

from linebot.v3.messaging import (
    FlexBox,
    FlexBubble,
    FlexButton,
    FlexMessage,
    FlexSpan,
    FlexText,
    MessageAction,
    ReplyMessageRequest,
    TextMessage,
    URIAction,
)

from ..bot.message import ReplyAction, RichReply, TextSegment
from .client import get_messaging_api
from .constants import (
    MAX_ACTION_LABEL_LENGTH,
    MAX_ALT_TEXT_LENGTH,
    MAX_FLEX_BUTTONS,
    MAX_REPLY_MESSAGES,
    MAX_TEXT_LENGTH,
)

logger = logging.getLogger("linebot")

# 文字樣式標記對應的 Flex span 屬性
SPAN_STYLES = {
    "RED": {"color": "#E53935"},
    "BLUE": {"color": "#1E88E5"},
    "GREEN": {"color": "#43A047"},
    "ORANGE": {"color": "#FB8C00"},
    "BOLD": {"weight": "bold"},
}


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def _build_action(action: ReplyAction) -> URIAction | MessageAction:
    label = _truncate(action.label, MAX_ACTION_LABEL_LENGTH)
    if action.kind == "uri":
        return URIAction(label=label, uri=action.value)
    return MessageAction(label=label, text=action.value)


def _build_span(segment: TextSegment) -> FlexSpan:
    style = SPAN_STYLES.get(segment.style or "", {})
    return FlexSpan(text=segment.text, **style)


def build_flex_message(reply: RichReply) -> FlexMessage:
    """將 structured RichReply 組成 Flex bubble

    本文放在 body，動作按鈕依序放在 footer（連結在前、回覆按鈕在後）。
    """
    segments = [segment for segment in reply.segments if segment.text]
    if segments and any(segment.style for segment in segments):
        body_text = FlexText(
            text=reply.body,
            wrap=True,
            contents=[_build_span(segment) for segment in segments],
        )
    else:
        body_text = FlexText(text=reply.body, wrap=True)

    buttons = [
        FlexButton(
            action=_build_action(action),
            style="primary" if action.kind == "uri" else "secondary",
            height="sm",
            margin="sm",
        )
        for action in reply.actions[:MAX_FLEX_BUTTONS]
    ]

    bubble = FlexBubble(
        body=FlexBox(layout="vertical", contents=[body_text]),
        footer=FlexBox(layout="vertical", spacing="sm", contents=buttons) if buttons else None,
    )
    return FlexMessage(
        alt_text=_truncate(reply.alt_text or reply.body, MAX_ALT_TEXT_LENGTH),
        contents=bubble,
    )


def build_line_message(reply: RichReply) -> TextMessage | FlexMessage:
    """RichReply 轉為 LINE 訊息物件"""
    if reply.is_structured:
        return build_flex_message(reply)
    return TextMessage(text=_truncate(reply.text, MAX_TEXT_LENGTH))


async def reply_messages(
    access_token: str,
    reply_token: str,
    messages: list[TextMessage | FlexMessage],
) -> list[str]:
    """使用 reply token 回覆訊息

    Args:
        access_token: Bot 的 channel access token
        reply_token: Line 回覆 token（只能使用一次）
        messages: 訊息列表（最多 5 則）

    Returns:
        發送成功的訊息 ID 列表
    """
    if not messages:
        return []

    # Line 限制每次最多 5 則訊息
    messages_to_send = messages[:MAX_REPLY_MESSAGES]

    try:
        api = await get_messaging_api(access_token)
        response = await api.reply_message(
            ReplyMessageRequest(
                reply_token=reply_token,
                messages=messages_to_send,
            )
        )

        msg_types = [type(m).__name__ for m in messages_to_send]
        logger.info(f"回覆訊息: {msg_types}")

        if response and response.sent_messages:
            return [m.id for m in response.sent_messages]
        return []
    except Exception as e:
        logger.error(f"回覆訊息失敗: {e}")
        raise  # 往上拋出讓呼叫端記錄結果


async def reply_rich(access_token: str, reply_token: str, reply: RichReply) -> list[str]:
    """回覆一則 RichReply

    Flex 訊息被 LINE 拒絕時無法再用同一個 reply token 重送，
    所以這裡不做 fallback，錯誤直接往上拋。
    """
    return await reply_messages(access_token, reply_token, [build_line_message(reply)])


def parse_line_error(error: Exception) -> str:
    """解析 Line API 錯誤訊息（記錄與結果 JSON 使用）"""
    error_str = str(error).lower()

    if "invalid reply token" in error_str:
        return "reply token が無効または期限切れです"
    if "429" in error_str or "too many" in error_str or "rate" in error_str:
        return "送信頻度の上限に達しました"
    if "401" in error_str or "unauthorized" in error_str or "authentication" in error_str:
        return "チャネルアクセストークンが無効です"
    if "403" in error_str or "forbidden" in error_str:
        return "送信権限がありません"
    if "400" in error_str or "bad request" in error_str:
        return f"メッセージ形式が不正です: {str(error)[:100]}"
    return f"送信失敗: {str(error)[:100]}"

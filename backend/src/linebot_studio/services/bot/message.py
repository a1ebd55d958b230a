"""Webhook 事件與回覆的資料模型

定義平台無關的事件、AI 嘗試紀錄與回覆格式，
讓分派器、AI 引擎與回覆編譯器之間以固定結構溝通。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EventKind(str, Enum):
    """事件種類（只處理 message）"""
    MESSAGE = "message"
    OTHER = "other"


class MessageType(str, Enum):
    """可處理的訊息類型"""
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    FILE = "file"


MEDIA_MESSAGE_TYPES = {
    MessageType.IMAGE,
    MessageType.AUDIO,
    MessageType.VIDEO,
    MessageType.FILE,
}


@dataclass
class InboundEvent:
    """Webhook payload 中的單一事件（已正規化）"""
    kind: EventKind
    raw_type: str = ""
    message_type: MessageType | None = None
    reply_token: str | None = None
    source_user_id: str | None = None  # 只用於記錄
    text: str | None = None
    message_id: str | None = None
    file_name: str | None = None

    @property
    def is_message(self) -> bool:
        return self.kind == EventKind.MESSAGE

    @property
    def is_media(self) -> bool:
        return self.message_type in MEDIA_MESSAGE_TYPES


@dataclass
class MediaPayload:
    """下載後的媒體內容，以 inline data 附加到 AI 請求"""
    data: bytes
    mime_type: str


class AttemptOutcome(str, Enum):
    """單次 (model, version) 嘗試的分類結果"""
    SUCCESS = "success"
    EMPTY = "empty"
    NOT_FOUND = "not_found"
    QUOTA = "quota"
    INVALID_KEY = "invalid_key"
    ERROR = "error"


@dataclass
class CompletionAttempt:
    """單次嘗試紀錄，全部失敗時用來組出診斷訊息"""
    model: str
    api_version: str
    status: int | None
    outcome: AttemptOutcome
    error_message: str | None = None
    text: str | None = None

    def summary(self) -> str:
        status = self.status if self.status is not None else "-"
        return f"{self.model}@{self.api_version}({status})"


@dataclass
class ReplyAction:
    """Flex 回覆中的可點擊動作"""
    kind: str  # "uri" 或 "message"
    label: str
    value: str


@dataclass
class TextSegment:
    """回覆本文片段，style 為 None 時為一般文字"""
    text: str
    style: str | None = None  # RED, BLUE, GREEN, ORANGE, BOLD


@dataclass
class RichReply:
    """回覆編譯結果

    kind 為 "plain" 時只使用 text；
    kind 為 "structured" 時使用 alt_text、body、segments 與 actions。
    """
    kind: str
    text: str = ""
    alt_text: str = ""
    body: str = ""
    segments: list[TextSegment] = field(default_factory=list)
    actions: list[ReplyAction] = field(default_factory=list)

    @property
    def is_structured(self) -> bool:
        return self.kind == "structured"

    @classmethod
    def plain(cls, text: str) -> RichReply:
        return cls(kind="plain", text=text)


@dataclass
class EventResult:
    """單一事件的處理結果（webhook 回應 JSON 使用）"""
    reply_token: str | None
    status: str  # replied, error_replied, timeout_replied, send_failed
    message_ids: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "replyToken": self.reply_token,
            "status": self.status,
            "messageIds": self.message_ids,
            "error": self.error,
        }

"""bot_line.messaging 測試。"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from linebot.v3.messaging import FlexMessage, MessageAction, TextMessage, URIAction

from linebot_studio.services.bot.message import ReplyAction, RichReply, TextSegment
from linebot_studio.services.bot_line import messaging
from linebot_studio.services.rich_reply import compile_reply


class _FakeApi:
    def __init__(self) -> None:
        self.reply_calls = []
        self.reply_error = None

    async def reply_message(self, req):
        self.reply_calls.append(req)
        if self.reply_error:
            raise self.reply_error
        return SimpleNamespace(sent_messages=[SimpleNamespace(id="r1")])


def test_build_line_message_plain_text() -> None:
    msg = messaging.build_line_message(RichReply.plain("hello"))
    assert isinstance(msg, TextMessage)
    assert msg.text == "hello"

    long_msg = messaging.build_line_message(RichReply.plain("a" * 6000))
    assert len(long_msg.text) == 5000


def test_build_flex_message_buttons() -> None:
    reply = compile_reply("案内です [LINK:サイト|https://example.com] [BUTTON:はい|yes]")
    msg = messaging.build_line_message(reply)
    assert isinstance(msg, FlexMessage)
    assert msg.alt_text == "案内です"

    bubble = msg.contents
    assert bubble.body.contents[0].text == "案内です"
    buttons = bubble.footer.contents
    assert isinstance(buttons[0].action, URIAction)
    assert buttons[0].action.uri == "https://example.com"
    assert buttons[0].style == "primary"
    assert isinstance(buttons[1].action, MessageAction)
    assert buttons[1].action.text == "yes"
    assert buttons[1].style == "secondary"


def test_build_flex_message_limits() -> None:
    reply = RichReply(
        kind="structured",
        alt_text="x" * 500,
        body="body",
        segments=[TextSegment("body")],
        actions=[ReplyAction("message", "とても長いボタンのラベルです。二十文字を超えています", "v")] * 12,
    )
    msg = messaging.build_flex_message(reply)
    assert len(msg.alt_text) == 400
    assert len(msg.contents.footer.contents) == 10
    assert len(msg.contents.footer.contents[0].action.label) == 20


def test_build_flex_message_styled_spans() -> None:
    reply = compile_reply("[BOLD:重要] [RED:休業日] [LINK:詳細|https://example.com]")
    msg = messaging.build_flex_message(reply)
    body_text = msg.contents.body.contents[0]
    spans = body_text.contents
    assert spans[0].text == "重要"
    assert spans[0].weight == "bold"
    assert spans[-1].text == "休業日"
    assert spans[-1].color == "#E53935"


@pytest.mark.asyncio
async def test_reply_messages_limits_and_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    api = _FakeApi()
    monkeypatch.setattr(messaging, "get_messaging_api", AsyncMock(return_value=api))

    assert await messaging.reply_messages("token", "rt", []) == []

    ids = await messaging.reply_messages("token", "rt", [TextMessage(text=f"m{i}") for i in range(7)])
    assert ids == ["r1"]
    assert len(api.reply_calls[-1].messages) == 5
    assert api.reply_calls[-1].reply_token == "rt"

    api.reply_error = RuntimeError("boom")
    with pytest.raises(RuntimeError):
        await messaging.reply_messages("token", "rt", [TextMessage(text="hello")])


@pytest.mark.asyncio
async def test_reply_rich_sends_single_message(monkeypatch: pytest.MonkeyPatch) -> None:
    api = _FakeApi()
    monkeypatch.setattr(messaging, "get_messaging_api", AsyncMock(return_value=api))

    ids = await messaging.reply_rich("token", "rt", compile_reply("[LINK:Go|https://example.com]"))
    assert ids == ["r1"]
    sent = api.reply_calls[0].messages
    assert len(sent) == 1
    assert isinstance(sent[0], FlexMessage)


def test_parse_line_error() -> None:
    assert "reply token" in messaging.parse_line_error(Exception("Invalid reply token"))
    assert messaging.parse_line_error(Exception("(429) Too Many Requests")) == "送信頻度の上限に達しました"
    assert messaging.parse_line_error(Exception("(401) Unauthorized")) == "チャネルアクセストークンが無効です"
    assert messaging.parse_line_error(Exception("(403) Forbidden")) == "送信権限がありません"
    assert messaging.parse_line_error(Exception("(400) Bad Request")).startswith("メッセージ形式が不正です")
    assert messaging.parse_line_error(Exception("other")).startswith("送信失敗")

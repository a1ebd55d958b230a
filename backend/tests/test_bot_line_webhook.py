"""bot_line.webhook 簽章驗證與事件解析測試。"""

from __future__ import annotations

from conftest import (
    TEST_CHANNEL_SECRET,
    TEST_LINE_USER_ID,
    follow_event,
    media_event,
    sign,
    sticker_event,
    text_event,
)
from linebot_studio.services.bot.message import EventKind, MessageType
from linebot_studio.services.bot_line import webhook


BODY = b'{"destination":"U0","events":[]}'


def test_verify_signature():
    signature = sign(BODY)
    assert webhook.verify_signature(BODY, signature, TEST_CHANNEL_SECRET) is True
    assert webhook.verify_signature(BODY + b" ", signature, TEST_CHANNEL_SECRET) is False
    assert webhook.verify_signature(BODY, signature, "other-secret") is False
    assert webhook.verify_signature(BODY, "", TEST_CHANNEL_SECRET) is False
    assert webhook.verify_signature(BODY, signature, "") is False


def test_verify_signature_non_ascii_header():
    # header 以 latin-1 解碼後可能含非 ASCII 字元
    assert webhook.verify_signature(BODY, "abc\xe9", TEST_CHANNEL_SECRET) is False
    assert webhook.verify_signature(BODY, sign(BODY) + "é", TEST_CHANNEL_SECRET) is False
    assert webhook.check_webhook_signature(BODY, "署名", TEST_CHANNEL_SECRET) is True
    assert webhook.check_webhook_signature(BODY, "署名", TEST_CHANNEL_SECRET, strict=True) is False


def test_check_webhook_signature_lenient_by_default():
    assert webhook.check_webhook_signature(BODY, sign(BODY), TEST_CHANNEL_SECRET) is True
    assert webhook.check_webhook_signature(BODY, "bad", TEST_CHANNEL_SECRET) is True
    assert webhook.check_webhook_signature(BODY, None, TEST_CHANNEL_SECRET) is True


def test_check_webhook_signature_strict():
    assert webhook.check_webhook_signature(BODY, sign(BODY), TEST_CHANNEL_SECRET, strict=True) is True
    assert webhook.check_webhook_signature(BODY, "bad", TEST_CHANNEL_SECRET, strict=True) is False
    assert webhook.check_webhook_signature(BODY, None, TEST_CHANNEL_SECRET, strict=True) is False


def test_extract_events():
    assert webhook.extract_events({"events": [{"type": "follow"}]}) == [{"type": "follow"}]
    assert webhook.extract_events({"destination": "U0"}) == []
    assert webhook.extract_events({"events": "nope"}) is None
    assert webhook.extract_events([{"type": "message"}]) is None
    assert webhook.extract_events(None) is None


def test_parse_text_event():
    [event] = webhook.parse_events([text_event("こんにちは", "rt-1")])

    assert event.kind == EventKind.MESSAGE
    assert event.message_type == MessageType.TEXT
    assert event.text == "こんにちは"
    assert event.reply_token == "rt-1"
    assert event.source_user_id == TEST_LINE_USER_ID
    assert event.message_id == "m-text"


def test_parse_media_events():
    events = webhook.parse_events([
        media_event("image"),
        media_event("audio"),
        media_event("video"),
        media_event("file", file_name="menu.pdf"),
    ])

    assert [e.message_type for e in events] == [
        MessageType.IMAGE,
        MessageType.AUDIO,
        MessageType.VIDEO,
        MessageType.FILE,
    ]
    assert all(e.is_media and e.text is None for e in events)
    assert events[3].file_name == "menu.pdf"
    assert events[0].message_id == "m-image"


def test_parse_unsupported_events_as_other():
    unknown_message = text_event("x")
    unknown_message["message"] = {"id": "m-1", "type": "hologram"}
    unknown_event = text_event("x")
    unknown_event["type"] = "teleport"

    events = webhook.parse_events([
        follow_event("rt-f"),
        sticker_event("rt-s"),
        unknown_message,
        unknown_event,
    ])

    assert all(e.kind == EventKind.OTHER for e in events)
    assert not any(e.is_message for e in events)
    assert events[0].raw_type == "follow"
    assert events[1].raw_type == "message"


def test_parse_malformed_events_does_not_break_batch():
    missing_fields = {"type": "message", "replyToken": "rt-x", "message": {"type": "text", "text": "hi"}}

    events = webhook.parse_events([
        {"replyToken": "no-type"},
        "not-an-event",
        None,
        missing_fields,
        text_event("ok", "rt-1"),
    ])

    assert [e.kind for e in events[:4]] == [EventKind.OTHER] * 4
    assert events[0].raw_type == ""
    assert events[3].raw_type == "message"
    assert events[4].text == "ok"


def test_to_inbound_event_without_event():
    event = webhook.to_inbound_event(None)
    assert event.kind == EventKind.OTHER
    assert event.raw_type == ""

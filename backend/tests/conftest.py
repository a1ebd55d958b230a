"""測試共用 fixtures

提供 mock database、Bot 設定、LINE webhook payload 等共用設定。
"""

import base64
import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from linebot_studio.models.bot import BotConfig


# ============================================================
# Mock 資料
# ============================================================

TEST_OWNER_ID = "owner-1"
TEST_BOT_ID = "bot-1"
TEST_CHANNEL_SECRET = "test-channel-secret"
TEST_ACCESS_TOKEN = "test-access-token"
TEST_API_KEY = "AIzaSyTESTKEY1234abcd"
TEST_LINE_USER_ID = "U1234567890abcdef"


def sign(body: bytes, secret: str = TEST_CHANNEL_SECRET) -> str:
    """計算 LINE webhook 簽章"""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def _base_event(event_type: str, reply_token: str | None = None) -> dict:
    """LINE webhook 事件的共通欄位"""
    event = {
        "type": event_type,
        "timestamp": 1700000000000,
        "mode": "active",
        "webhookEventId": f"01H-{event_type}-{reply_token or 'none'}",
        "deliveryContext": {"isRedelivery": False},
        "source": {"type": "user", "userId": TEST_LINE_USER_ID},
    }
    if reply_token is not None:
        event["replyToken"] = reply_token
    return event


def text_event(text: str, reply_token: str = "reply-token") -> dict:
    event = _base_event("message", reply_token)
    event["message"] = {"id": "m-text", "type": "text", "text": text, "quoteToken": "q-text"}
    return event


def media_event(message_type: str, reply_token: str = "reply-token", file_name: str | None = None) -> dict:
    message = {"id": f"m-{message_type}", "type": message_type}
    if message_type == "file":
        message["fileName"] = file_name or "document.bin"
        message["fileSize"] = 1024
    else:
        message["contentProvider"] = {"type": "line"}
    if message_type in ("image", "video"):
        message["quoteToken"] = f"q-{message_type}"
    event = _base_event("message", reply_token)
    event["message"] = message
    return event


def sticker_event(reply_token: str = "reply-token") -> dict:
    event = _base_event("message", reply_token)
    event["message"] = {
        "id": "m-sticker",
        "type": "sticker",
        "packageId": "446",
        "stickerId": "1988",
        "stickerResourceType": "STATIC",
        "quoteToken": "q-sticker",
    }
    return event


def follow_event(reply_token: str = "reply-token") -> dict:
    event = _base_event("follow", reply_token)
    event["follow"] = {"isUnblocked": False}
    return event


def gemini_ok(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def gemini_error(code: int, message: str, status: str = "") -> dict:
    return {"error": {"code": code, "message": message, "status": status}}


@pytest.fixture
def bot_config() -> BotConfig:
    """設定完整的 Bot"""
    return BotConfig(
        owner_id=TEST_OWNER_ID,
        bot_id=TEST_BOT_ID,
        name="Test Bot",
        line_channel_secret=TEST_CHANNEL_SECRET,
        line_channel_access_token=TEST_ACCESS_TOKEN,
        ai_api_key=TEST_API_KEY,
        system_prompt="あなたは親切なアシスタントです。",
        preferred_model_hint="Gemini 1.5 Flash (推奨)",
    )


@pytest.fixture
def mock_db_connection():
    """Mock 資料庫連線"""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock()

    class MockContextManager:
        async def __aenter__(self):
            return conn
        async def __aexit__(self, *args):
            pass

    return conn, MockContextManager()


@pytest.fixture
def gemini_transport():
    """建立依序回應的 Gemini mock transport

    用法：
        transport, requests = gemini_transport([(200, gemini_ok("hi"))])
    """
    def _create(responses: list[tuple[int, dict]]):
        requests: list[httpx.Request] = []
        queue = list(responses)

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            status, body = queue.pop(0) if queue else (500, gemini_error(500, "unexpected call"))
            return httpx.Response(status, json=body)

        return httpx.MockTransport(handler), requests

    return _create


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)

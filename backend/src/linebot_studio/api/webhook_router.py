"""Webhook API 路由

LINE 平台對非 2xx 回應會判定 webhook 異常甚至停用，
所以 POST /api/webhook 不論發生什麼情況都回 200：
- 不需處理（缺參數、Bot 不存在、設定不完整、驗證請求）回簡短文字
- 正常處理回每個事件的結果 JSON
- 未預期錯誤回診斷文字
錯誤細節透過聊天室回覆或伺服器記錄呈現，不透過 HTTP 狀態碼。
"""

import json
import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from ..config import settings
from ..models.bot import BotConfig
from ..services.bot_config import BotConfigResolver
from ..services.bot_line import check_webhook_signature, extract_events, parse_events
from ..services.dispatcher import EventDispatcher, LineReplySender

logger = logging.getLogger("webhook_router")

router = APIRouter(prefix="/api", tags=["Webhook"])

DispatcherFactory = Callable[[BotConfig], EventDispatcher]


def get_bot_resolver(request: Request) -> BotConfigResolver:
    """取得應用程式啟動時建立的 BotConfigResolver"""
    resolver = getattr(request.app.state, "bot_resolver", None)
    if resolver is None:
        resolver = BotConfigResolver()
    return resolver


def create_dispatcher(config: BotConfig) -> EventDispatcher:
    """依 Bot 設定建立事件分派器"""
    return EventDispatcher(config, LineReplySender(config.line_channel_access_token))


def get_dispatcher_factory() -> DispatcherFactory:
    return create_dispatcher


def _ok(message: str) -> PlainTextResponse:
    logger.info(f"Webhook: {message}")
    return PlainTextResponse(message, status_code=200)


# ============================================================
# 診斷頁
# ============================================================


@router.get("/webhook", response_class=HTMLResponse)
async def webhook_status():
    """Webhook 診斷頁（確認部署與設定是否正常）"""
    db_status = "✅ Configured" if settings.database_configured else "❌ Missing"
    strict = "ON" if settings.line_strict_signature else "OFF"
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return f"""
        <div style="font-family: sans-serif; padding: 20px; line-height: 1.6;">
            <h1 style="color: #00b900;">LINE Bot Studio Webhook</h1>
            <p>Status: <span style="background: #dfd; padding: 2px 6px;">ALIVE</span></p>
            <p>Database: {db_status}</p>
            <p>Strict signature: {strict}</p>
            <p>Default model: {settings.gemini_default_model}</p>
            <p>Time: {now}</p>
        </div>
    """


# ============================================================
# Webhook 端點
# ============================================================


@router.post("/webhook")
async def webhook(
    request: Request,
    owner_id: str | None = Query(None, alias="ownerId"),
    bot_id: str | None = Query(None, alias="botId"),
    uid: str | None = Query(None),
    bid: str | None = Query(None),
    x_line_signature: str | None = Header(None),
    resolver: BotConfigResolver = Depends(get_bot_resolver),
    dispatcher_factory: DispatcherFactory = Depends(get_dispatcher_factory),
):
    """
    Line Webhook 端點

    以 ownerId / botId（或舊版的 uid / bid）指定 Bot，永遠回 200。
    """
    try:
        return await _handle_webhook(
            request,
            (owner_id or uid or "").strip(),
            (bot_id or bid or "").strip(),
            x_line_signature,
            resolver,
            dispatcher_factory,
        )
    except Exception as e:
        logger.exception("Webhook 處理發生未預期錯誤")
        return PlainTextResponse(f"FATAL: {type(e).__name__}", status_code=200)


async def _handle_webhook(
    request: Request,
    owner_id: str,
    bot_id: str,
    signature: str | None,
    resolver: BotConfigResolver,
    dispatcher_factory: DispatcherFactory,
):
    if not owner_id or not bot_id:
        return _ok("OK (Query missing)")

    # 簽章要用原始 bytes 計算，必須在解析 JSON 之前取得
    body = await request.body()
    if not body.strip():
        return _ok("OK (Empty)")

    try:
        payload = json.loads(body)
    except ValueError:
        return _ok("OK (JSON Error)")

    raw_events = extract_events(payload)
    if raw_events is None:
        return _ok("OK (Invalid Payload)")
    if not raw_events:
        # LINE Developers 的「Verify」按鈕送出的是空事件
        return _ok("Verification Success")

    try:
        config = await resolver.resolve(owner_id, bot_id)
    except Exception as e:
        logger.error(f"讀取 Bot 設定失敗 ({owner_id}/{bot_id}): {e}")
        return PlainTextResponse("OK (DB Error)", status_code=200)

    if config is None:
        return _ok("OK (Bot Not Found)")
    if not config.is_complete:
        return _ok("OK (Config Incomplete)")

    if not check_webhook_signature(
        body,
        signature,
        config.line_channel_secret,
        strict=settings.line_strict_signature,
    ):
        return _ok("OK (Signature Invalid)")

    events = parse_events(raw_events)
    dispatcher = dispatcher_factory(config)
    results = await dispatcher.dispatch(events)

    return JSONResponse(
        [result.to_dict() if result is not None else None for result in results],
        status_code=200,
    )

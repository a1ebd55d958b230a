"""Webhook 事件分派

一次 webhook 呼叫中的所有事件並行處理，每個 message 事件恰好回覆一次：
成功時回覆 AI 回應（可能是 Flex 卡片），失敗時回覆錯誤說明文字。
單一事件失敗不影響其他事件，dispatch 本身永遠不會拋出例外。
"""

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from ..config import settings
from ..models.bot import BotConfig
from .bot.message import EventResult, InboundEvent, MediaPayload, RichReply
from .bot_line.media import media_failure_prompt, media_prompt, resolve_media
from .bot_line.messaging import parse_line_error, reply_rich
from .errors import CompletionError
from .gemini import generate_reply
from .rich_reply import compile_reply

logger = logging.getLogger("dispatcher")

ERROR_PREFIX = "[Error] "
TIMEOUT_MESSAGE = (
    "応答の生成に時間がかかりすぎたため、処理を中断しました。"
    "しばらくしてからもう一度お試しください。"
)

CompletionFn = Callable[..., Awaitable[str]]
MediaResolverFn = Callable[[InboundEvent, str], Awaitable[MediaPayload]]


class ReplySender(Protocol):
    """以 reply token 回覆的介面"""

    async def reply(self, reply_token: str, reply: RichReply) -> list[str]:
        ...


class LineReplySender:
    """透過 LINE Messaging API 回覆"""

    def __init__(self, access_token: str):
        self._access_token = access_token

    async def reply(self, reply_token: str, reply: RichReply) -> list[str]:
        return await reply_rich(self._access_token, reply_token, reply)


class EventDispatcher:
    """處理單次 webhook 呼叫的事件

    所有相依（設定、回覆發送、AI 呼叫、媒體下載）在建構時注入。

    用法：
        dispatcher = EventDispatcher(config, LineReplySender(config.line_channel_access_token))
        results = await dispatcher.dispatch(events)
    """

    def __init__(
        self,
        config: BotConfig,
        sender: ReplySender,
        *,
        completion: CompletionFn = generate_reply,
        media_resolver: MediaResolverFn = resolve_media,
        timeout: float | None = None,
    ):
        self._config = config
        self._sender = sender
        self._completion = completion
        self._media_resolver = media_resolver
        self._timeout = settings.webhook_dispatch_timeout if timeout is None else timeout

    async def dispatch(self, events: list[InboundEvent]) -> list[EventResult | None]:
        """並行處理所有事件

        Returns:
            與輸入順序相同的結果列表，非 message 事件為 None
        """
        if not events:
            return []

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        outcomes = await asyncio.gather(
            *(self._handle_event(event, deadline) for event in events),
            return_exceptions=True,
        )

        results: list[EventResult | None] = []
        for event, outcome in zip(events, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"事件處理發生未預期錯誤: {outcome!r}")
                results.append(EventResult(event.reply_token, "failed", error=type(outcome).__name__))
            else:
                results.append(outcome)
        return results

    async def _handle_event(self, event: InboundEvent, deadline: float) -> EventResult | None:
        if not event.is_message:
            logger.debug(f"略過非訊息事件: {event.raw_type or 'unknown'}")
            return None

        if not event.reply_token:
            logger.warning(f"訊息事件缺少 reply token，無法回覆 (user={event.source_user_id})")
            return EventResult(None, "no_reply_token")

        logger.info(
            f"處理訊息事件: type={event.message_type.value} user={event.source_user_id}"
        )

        loop = asyncio.get_running_loop()
        remaining = max(deadline - loop.time(), 0.0)
        error: str | None = None
        try:
            reply = await asyncio.wait_for(self._generate(event), timeout=remaining)
            status = "replied"
        except asyncio.TimeoutError:
            logger.error(f"事件處理逾時 ({self._timeout} 秒)")
            reply = RichReply.plain(ERROR_PREFIX + TIMEOUT_MESSAGE)
            status = "timeout_replied"
            error = "timeout"
        except CompletionError as e:
            logger.warning(f"AI 回應失敗 [{e.code}]")
            reply = RichReply.plain(ERROR_PREFIX + e.message)
            status = "error_replied"
            error = e.code
        except Exception as e:
            logger.exception("事件處理發生未預期錯誤")
            reply = RichReply.plain(
                f"{ERROR_PREFIX}予期しないエラーが発生しました ({type(e).__name__})"
            )
            status = "error_replied"
            error = type(e).__name__

        return await self._send(event, reply, status, error)

    async def _generate(self, event: InboundEvent) -> RichReply:
        user_text, media = await self._resolve_prompt(event)
        text = await self._completion(
            self._config.ai_api_key,
            self._config.system_prompt,
            user_text,
            media=media,
            model_hint=self._config.preferred_model_hint,
            temperature=self._config.temperature,
        )
        return compile_reply(text)

    async def _resolve_prompt(self, event: InboundEvent) -> tuple[str, MediaPayload | None]:
        """決定送給 AI 的文字與媒體

        媒體下載失敗不中止，改用說明失敗原因的替代提示。
        """
        if not event.is_media:
            return event.text or "", None

        message_type = event.message_type.value
        try:
            media = await self._media_resolver(event, self._config.line_channel_access_token)
        except Exception as e:
            logger.warning(f"媒體下載失敗，改用替代提示: {e}")
            return media_failure_prompt(message_type, e), None
        return media_prompt(message_type, event.file_name), media

    async def _send(
        self,
        event: InboundEvent,
        reply: RichReply,
        status: str,
        error: str | None,
    ) -> EventResult:
        try:
            message_ids = await self._sender.reply(event.reply_token, reply)
        except Exception as e:
            logger.error(f"回覆發送失敗: {e}")
            return EventResult(event.reply_token, "send_failed", error=parse_line_error(e))
        return EventResult(event.reply_token, status, message_ids, error)

"""資料模型"""

from linebot_studio.models.bot import (
    BotConfig,
    LineBotInfoResponse,
    RichMenuButton,
    RichMenuConfig,
    RichMenuCreateRequest,
    RichMenuCreateResponse,
    document_path,
)

__all__ = [
    "BotConfig",
    "LineBotInfoResponse",
    "RichMenuButton",
    "RichMenuConfig",
    "RichMenuCreateRequest",
    "RichMenuCreateResponse",
    "document_path",
]

"""Line Bot 平台實作

將 Line Messaging API 的操作封裝為子模組：
- client: Line API 客戶端（依 access token 快取）
- webhook: Webhook 簽章驗證與事件解析
- messaging: RichReply 轉換與回覆
- media: 媒體內容下載與 MIME 分類
- rich_menu: Rich menu 建立與 Bot 資訊查詢
- constants: 常數定義
"""

# === client ===
from .client import (
    get_line_config,
    get_messaging_api,
    get_messaging_blob_api,
    close_line_clients,
)

# === webhook ===
from .webhook import (
    verify_signature,
    check_webhook_signature,
    extract_events,
    to_inbound_event,
    parse_events,
)

# === messaging ===
from .messaging import (
    build_flex_message,
    build_line_message,
    reply_messages,
    reply_rich,
    parse_line_error,
)

# === media ===
from .media import (
    classify_mime,
    download_line_content,
    resolve_media,
    media_prompt,
    media_failure_prompt,
)

# === rich_menu ===
from .rich_menu import (
    compute_area_bounds,
    build_rich_menu_request,
    deploy_rich_menu,
    get_bot_info,
)

__all__ = [
    # client
    "get_line_config",
    "get_messaging_api",
    "get_messaging_blob_api",
    "close_line_clients",
    # webhook
    "verify_signature",
    "check_webhook_signature",
    "extract_events",
    "to_inbound_event",
    "parse_events",
    # messaging
    "build_flex_message",
    "build_line_message",
    "reply_messages",
    "reply_rich",
    "parse_line_error",
    # media
    "classify_mime",
    "download_line_content",
    "resolve_media",
    "media_prompt",
    "media_failure_prompt",
    # rich_menu
    "compute_area_bounds",
    "build_rich_menu_request",
    "deploy_rich_menu",
    "get_bot_info",
]

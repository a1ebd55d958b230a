"""Line Bot 常數定義"""

# 訊息類型對應的 MIME 類型（不檢查檔案內容，只依 LINE 宣告的類型判斷）
MESSAGE_TYPE_MIME = {
    "image": "image/jpeg",
    "audio": "audio/m4a",
    "video": "video/mp4",
}

# file 類型依副檔名判斷
FILE_EXTENSION_MIME = {
    ".pdf": "application/pdf",
}

DEFAULT_FILE_MIME = "application/octet-stream"

# 訊息類型的日文名稱（下載失敗時的替代提示使用）
MESSAGE_TYPE_LABELS = {
    "image": "画像",
    "audio": "音声",
    "video": "動画",
    "file": "ファイル",
}

# LINE Messaging API 限制
MAX_REPLY_MESSAGES = 5
MAX_TEXT_LENGTH = 5000
MAX_ALT_TEXT_LENGTH = 400
MAX_ACTION_LABEL_LENGTH = 20
MAX_FLEX_BUTTONS = 10

# Rich menu 尺寸
RICH_MENU_WIDTH = 2500
RICH_MENU_HEIGHT = 1686
MAX_RICH_MENU_IMAGE_BYTES = 1024 * 1024

"""LINE Bot Studio - Gemini 驅動的 LINE 官方帳號 Bot 平台"""

__version__ = "0.1.0"

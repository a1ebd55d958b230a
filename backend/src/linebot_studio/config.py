"""服務設定

全域設定（資料庫、Gemini 模型佇列、LINE API、webhook 期限）由環境變數提供，
本機開發時可放在專案根目錄的 .env。
每個 Bot 的 LINE 憑證與 Gemini 金鑰屬於 Bot 設定文件，不經過這裡。
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# 專案根目錄（backend/src/linebot_studio 往上三層）
load_dotenv(Path(__file__).resolve().parents[3] / ".env")

logger = logging.getLogger(__name__)


def _get_env(key: str, default: str = "", required: bool = False) -> str:
    """取得環境變數，可設定是否必要"""
    value = os.getenv(key, default)
    if required and not value:
        logger.warning(f"環境變數 {key} 未設定，相關功能可能無法正常運作")
    return value


def _get_env_int(key: str, default: int) -> int:
    """取得整數環境變數"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"環境變數 {key} 不是有效的整數，使用預設值 {default}")
        return default


def _get_env_float(key: str, default: float) -> float:
    """取得浮點數環境變數"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"環境變數 {key} 不是有效的數字，使用預設值 {default}")
        return default


def _get_env_bool(key: str, default: bool = False) -> bool:
    """取得布林環境變數（1/true/yes/on 視為 True）"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_env_list(key: str, default: list[str]) -> list[str]:
    """取得逗號分隔的清單環境變數"""
    value = os.getenv(key)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """應用程式設定"""

    # ===================
    # 資料庫設定（Bot 設定文件）
    # ===================
    db_host: str = _get_env("DB_HOST", "localhost")
    db_port: int = _get_env_int("DB_PORT", 5432)
    db_user: str = _get_env("DB_USER", "linebot_studio")
    db_password: str = _get_env("DB_PASSWORD", required=True)
    db_name: str = _get_env("DB_NAME", "linebot_studio")
    # webhook 只讀一筆文件，連線池不需要太大
    db_pool_min_size: int = _get_env_int("DB_POOL_MIN_SIZE", 1)
    db_pool_max_size: int = _get_env_int("DB_POOL_MAX_SIZE", 5)
    db_command_timeout: float = _get_env_float("DB_COMMAND_TIMEOUT", 5.0)

    # ===================
    # Gemini 設定
    # ===================
    gemini_api_base: str = _get_env(
        "GEMINI_API_BASE", "https://generativelanguage.googleapis.com"
    )
    gemini_default_model: str = _get_env("GEMINI_DEFAULT_MODEL", "gemini-1.5-flash")
    # 依偏好順序排列：先快速低成本，後能力較廣
    gemini_fallback_models: list[str] = _get_env_list(
        "GEMINI_FALLBACK_MODELS",
        [
            "gemini-2.0-flash",
            "gemini-1.5-flash",
            "gemini-1.5-flash-latest",
            "gemini-1.5-pro",
            "gemini-pro",
        ],
    )
    # beta 版通常先開放新模型，所以排在前面
    gemini_api_versions: list[str] = _get_env_list("GEMINI_API_VERSIONS", ["v1beta", "v1"])
    gemini_temperature: float = _get_env_float("GEMINI_TEMPERATURE", 0.7)
    gemini_max_output_tokens: int = _get_env_int("GEMINI_MAX_OUTPUT_TOKENS", 800)
    gemini_timeout: float = _get_env_float("GEMINI_TIMEOUT", 30.0)
    gemini_rate_limit_backoff: float = _get_env_float("GEMINI_RATE_LIMIT_BACKOFF", 2.0)
    # 全部模型失敗後，是否再用不含 system prompt 的最小請求診斷一次
    gemini_diagnostic_probe: bool = _get_env_bool("GEMINI_DIAGNOSTIC_PROBE", True)

    # ===================
    # Line Bot 設定
    # ===================
    line_api_base: str = _get_env("LINE_API_BASE", "https://api.line.me")
    line_data_api_base: str = _get_env("LINE_DATA_API_BASE", "https://api-data.line.me")
    line_media_timeout: float = _get_env_float("LINE_MEDIA_TIMEOUT", 60.0)
    # 簽章不符時是否直接中止（預設只記錄警告，避免擋掉 LINE 的驗證請求）
    line_strict_signature: bool = _get_env_bool("LINE_STRICT_SIGNATURE", False)

    # ===================
    # Webhook 設定
    # ===================
    # 整批事件的處理期限（秒），需小於 serverless 執行上限與 reply token 有效時間
    webhook_dispatch_timeout: float = _get_env_float("WEBHOOK_DISPATCH_TIMEOUT", 25.0)

    # ===================
    # CORS 設定
    # ===================
    # credentials=True 時不能用 "*"
    cors_origins: list[str] = _get_env_list(
        "CORS_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
    )

    # ===================
    # 狀態
    # ===================
    @property
    def database_configured(self) -> bool:
        """是否已設定資料庫密碼（診斷頁使用）"""
        return bool(self.db_password)


settings = Settings()

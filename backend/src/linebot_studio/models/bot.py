"""Bot 設定相關的 Pydantic models

包含：
- BotConfig（Webhook 使用的唯讀設定）
- RichMenu（Rich menu 建立請求）
- LineBotInfo（Bot 基本資訊）
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


# ============================================================
# Bot Config
# ============================================================


class BotConfig(BaseModel):
    """單一 Bot 的設定（由管理介面寫入，webhook 只讀）"""

    owner_id: str
    bot_id: str
    name: str | None = None
    line_channel_secret: str = ""
    line_channel_access_token: str = ""
    ai_api_key: str = ""
    system_prompt: str = ""
    preferred_model_hint: str | None = None
    temperature: float | None = None

    @property
    def document_path(self) -> str:
        return document_path(self.owner_id, self.bot_id)

    @property
    def is_complete(self) -> bool:
        """LINE 憑證與 AI 金鑰都已設定"""
        return bool(
            self.line_channel_secret.strip()
            and self.line_channel_access_token.strip()
            and self.ai_api_key.strip()
        )

    @classmethod
    def from_document(cls, owner_id: str, bot_id: str, data: dict[str, Any]) -> "BotConfig":
        """從 Bot 設定文件建立

        文件格式：
            {
                "name": "...",
                "geminiApiKey": "...",
                "lineConfig": {"channelSecret": "...", "channelAccessToken": "..."},
                "aiConfig": {"systemPrompt": "...", "model": "...", "temperature": 0.7},
            }
        """
        line_config = data.get("lineConfig") or {}
        ai_config = data.get("aiConfig") or {}

        temperature = ai_config.get("temperature")
        if not isinstance(temperature, (int, float)) or isinstance(temperature, bool):
            temperature = None

        return cls(
            owner_id=owner_id,
            bot_id=bot_id,
            name=data.get("name"),
            line_channel_secret=str(line_config.get("channelSecret") or ""),
            line_channel_access_token=str(line_config.get("channelAccessToken") or ""),
            ai_api_key=str(data.get("geminiApiKey") or ""),
            system_prompt=str(ai_config.get("systemPrompt") or ""),
            preferred_model_hint=ai_config.get("model") or None,
            temperature=temperature,
        )


def document_path(owner_id: str, bot_id: str) -> str:
    """Bot 設定文件路徑"""
    return f"users/{owner_id}/bots/{bot_id}"


# ============================================================
# Rich Menu
# ============================================================


class RichMenuButton(BaseModel):
    """Rich menu 按鈕"""

    label: str = Field(..., max_length=20)
    type: Literal["uri", "message"]
    value: str


class RichMenuConfig(BaseModel):
    """Rich menu 版面設定"""

    layout: Literal["six", "three"] = "six"
    chat_bar_text: str = Field("メニュー", alias="chatBarText", max_length=14)
    background_image_url: str | None = Field(None, alias="backgroundImageUrl")
    buttons: list[RichMenuButton]

    model_config = {"populate_by_name": True}


class RichMenuCreateRequest(BaseModel):
    """建立 Rich menu 請求"""

    token: str
    rich_menu: RichMenuConfig = Field(..., alias="richMenu")

    model_config = {"populate_by_name": True}


class RichMenuCreateResponse(BaseModel):
    """建立 Rich menu 回應"""

    success: bool
    rich_menu_id: str | None = Field(None, serialization_alias="richMenuId")
    error: str | None = None


# ============================================================
# Line Bot Info
# ============================================================


class LineBotInfoResponse(BaseModel):
    """Bot 基本資訊"""

    display_name: str | None = Field(None, serialization_alias="displayName")
    picture_url: str | None = Field(None, serialization_alias="pictureUrl")

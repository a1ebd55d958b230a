"""Line Rich Menu 建立與 Bot 資訊查詢

Rich menu 固定為 2500x1686：
- six：2 列 x 3 欄
- three：下半部 1 列 x 3 欄
只負責區塊座標與 LINE API 呼叫，背景圖片直接使用使用者提供的 URL，不做合成。
"""

import logging

import httpx
from linebot.v3.messaging import (
    MessageAction,
    RichMenuArea,
    RichMenuBounds,
    RichMenuRequest,
    RichMenuSize,
    URIAction,
)

from ...config import settings
from ...models.bot import RichMenuButton, RichMenuConfig
from ..errors import ExternalServiceError, ServiceError, ValidationError
from .client import get_messaging_api, get_messaging_blob_api
from .constants import MAX_RICH_MENU_IMAGE_BYTES, RICH_MENU_HEIGHT, RICH_MENU_WIDTH

logger = logging.getLogger("linebot.rich_menu")

LAYOUT_BUTTON_COUNT = {"six": 6, "three": 3}


def compute_area_bounds(layout: str) -> list[tuple[int, int, int, int]]:
    """計算各按鈕區塊 (x, y, width, height)"""
    col_width = RICH_MENU_WIDTH // 3
    row_height = RICH_MENU_HEIGHT // 2

    if layout == "six":
        return [
            ((i % 3) * col_width, (i // 3) * row_height, col_width, row_height)
            for i in range(6)
        ]
    # three：只使用下半部
    return [(i * col_width, row_height, col_width, row_height) for i in range(3)]


def _build_action(button: RichMenuButton) -> URIAction | MessageAction:
    if button.type == "uri":
        return URIAction(label=button.label, uri=button.value)
    return MessageAction(label=button.label, text=button.value)


def build_rich_menu_request(config: RichMenuConfig, name: str) -> RichMenuRequest:
    """組出 RichMenuRequest

    Raises:
        ValidationError: 按鈕數量不足
    """
    required = LAYOUT_BUTTON_COUNT[config.layout]
    if len(config.buttons) < required:
        raise ValidationError(f"ボタンが{required}個必要です（現在 {len(config.buttons)} 個）")

    areas = [
        RichMenuArea(
            bounds=RichMenuBounds(x=x, y=y, width=width, height=height),
            action=_build_action(button),
        )
        for (x, y, width, height), button in zip(compute_area_bounds(config.layout), config.buttons)
    ]
    return RichMenuRequest(
        size=RichMenuSize(width=RICH_MENU_WIDTH, height=RICH_MENU_HEIGHT),
        selected=True,
        name=name,
        chat_bar_text=config.chat_bar_text or "メニュー",
        areas=areas,
    )


async def fetch_background_image(
    url: str,
    http_client: httpx.AsyncClient | None = None,
) -> tuple[bytes, str]:
    """下載背景圖片並檢查格式與大小

    Returns:
        (圖片內容, content type)

    Raises:
        ValidationError: 無法下載、不是圖片或超過 1MB
    """
    try:
        if http_client is None:
            async with httpx.AsyncClient(follow_redirects=True, timeout=30) as client:
                response = await client.get(url)
        else:
            response = await http_client.get(url)
    except httpx.HTTPError as e:
        raise ValidationError(f"画像の取得に失敗しました ({type(e).__name__})。") from e

    if response.status_code != 200:
        raise ValidationError(
            f"画像の取得に失敗しました (HTTP {response.status_code})。URLが公開されているか確認してください。"
        )

    content_type = response.headers.get("content-type", "")
    if "text/html" in content_type:
        raise ValidationError(
            "指定されたURLは画像ではなく「Webページ」です。画像アドレスをコピーしたURLを使用してください。"
        )

    data = response.content
    if len(data) > MAX_RICH_MENU_IMAGE_BYTES:
        raise ValidationError(
            f"画像サイズが大きすぎます ({len(data) / 1024 / 1024:.1f}MB)。1MB以下の画像を使用してください。"
        )

    return data, content_type.split(";")[0].strip() or "image/png"


async def deploy_rich_menu(
    access_token: str,
    config: RichMenuConfig,
    name: str,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """建立 rich menu、上傳背景圖、設為預設並清除舊的 menu

    圖片下載或上傳失敗時會刪除剛建立的 menu。

    Returns:
        rich menu ID
    """
    request = build_rich_menu_request(config, name)
    api = await get_messaging_api(access_token)
    created = await api.create_rich_menu(request)
    rich_menu_id = created.rich_menu_id
    logger.info(f"Rich menu 已建立: {rich_menu_id}")

    if config.background_image_url:
        try:
            image, content_type = await fetch_background_image(config.background_image_url, http_client)
        except ValidationError:
            await api.delete_rich_menu(rich_menu_id)
            raise

        try:
            blob_api = await get_messaging_blob_api(access_token)
            await blob_api.set_rich_menu_image(
                rich_menu_id,
                body=image,
                _headers={"Content-Type": content_type},
            )
        except Exception as e:
            logger.error(f"Rich menu 圖片上傳失敗: {e}")
            await api.delete_rich_menu(rich_menu_id)
            raise ExternalServiceError(
                "LINE",
                "画像のアップロードに失敗しました。画像サイズは2500x1686、形式はPNG/JPGである必要があります。",
            ) from e

    await api.set_default_rich_menu(rich_menu_id)

    # 清除舊的 menu（上限 1000 個），失敗不影響結果
    menus = await api.get_rich_menu_list()
    for menu in menus.richmenus or []:
        if menu.rich_menu_id == rich_menu_id:
            continue
        try:
            await api.delete_rich_menu(menu.rich_menu_id)
        except Exception as e:
            logger.warning(f"刪除舊 rich menu 失敗 {menu.rich_menu_id}: {e}")

    return rich_menu_id


async def get_bot_info(
    access_token: str,
    http_client: httpx.AsyncClient | None = None,
) -> dict:
    """取得 Bot 顯示名稱與頭像

    Raises:
        ServiceError: LINE API 回應錯誤（status_code 沿用 LINE 的狀態碼）
    """
    url = f"{settings.line_api_base}/v2/bot/info"
    headers = {"Authorization": f"Bearer {access_token}"}

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=10) as client:
                response = await client.get(url, headers=headers)
        else:
            response = await http_client.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise ExternalServiceError("LINE", type(e).__name__) from e

    if response.status_code != 200:
        try:
            detail = response.json().get("message") or response.text
        except ValueError:
            detail = response.text
        raise ServiceError(str(detail)[:200], "LINE_API_ERROR", response.status_code)

    data = response.json()
    return {
        "display_name": data.get("displayName"),
        "picture_url": data.get("pictureUrl"),
    }

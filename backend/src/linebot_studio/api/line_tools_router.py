"""Line 管理工具 API 路由

包含：
- Bot 基本資訊查詢（設定畫面顯示名稱與頭像）
- Rich menu 建立
"""

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from ..models.bot import LineBotInfoResponse, RichMenuCreateRequest, RichMenuCreateResponse
from ..services.bot_line import deploy_rich_menu, get_bot_info
from ..services.errors import ServiceError

logger = logging.getLogger("line_tools_router")

router = APIRouter(prefix="/api", tags=["Line Tools"])


@router.get("/line-info", response_model=LineBotInfoResponse, response_model_by_alias=True)
async def api_line_info(token: str | None = Query(None)):
    """以 channel access token 取得 Bot 資訊"""
    if not token:
        raise HTTPException(status_code=400, detail="Token is required")

    try:
        info = await get_bot_info(token)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return LineBotInfoResponse(**info)


@router.post("/rich-menu")
async def api_create_rich_menu(request: RichMenuCreateRequest):
    """建立 rich menu 並設為預設"""
    name = f"Studio Menu {int(datetime.now().timestamp() * 1000)}"
    try:
        rich_menu_id = await deploy_rich_menu(request.token, request.rich_menu, name)
    except ServiceError as e:
        logger.warning(f"Rich menu 建立失敗: {e.message}")
        return _error_response(e.status_code, e.message)
    except Exception as e:
        logger.error(f"Rich menu 建立發生錯誤: {e}")
        return _error_response(
            500,
            "LINE APIとの通信中にエラーが発生しました。アクセストークンを確認してください。",
        )

    return RichMenuCreateResponse(success=True, rich_menu_id=rich_menu_id).model_dump(by_alias=True)


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = RichMenuCreateResponse(success=False, error=message).model_dump(by_alias=True)
    return JSONResponse(body, status_code=status_code)

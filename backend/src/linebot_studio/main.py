"""FastAPI 應用程式入口"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .database import init_db_pool, close_db_pool
from .services.bot_config import BotConfigResolver
from .services.bot_line import close_line_clients
from .api import line_tools_router, webhook_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """應用程式生命週期管理"""
    # 啟動時：資料庫連線池與 Bot 設定讀取器只建立一次
    await init_db_pool()
    app.state.bot_resolver = BotConfigResolver()
    yield
    # 關閉時
    await close_line_clients()
    await close_db_pool()


app = FastAPI(
    title="LINE Bot Studio API",
    version=__version__,
    lifespan=lifespan,
)

# CORS 設定
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 註冊路由
app.include_router(webhook_router.router)
app.include_router(line_tools_router.router)


@app.get("/api/health")
async def health():
    """API 健康檢查"""
    return {"status": "healthy"}


@app.get("/api/test")
async def environment_test():
    """部署環境確認"""
    return {
        "message": "API Environment Test Success",
        "time": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "version": __version__,
    }

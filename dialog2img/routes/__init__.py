"""
API Routes Module
所有 API 路由的统一入口
"""

from fastapi import APIRouter

from .config import router as config_router
from .chat import router as chat_router

# 主 API 路由
api_router = APIRouter()

# 注册子路由
api_router.include_router(config_router, prefix="/config", tags=["配置"])
api_router.include_router(chat_router, prefix="/chat", tags=["聊天截图"])

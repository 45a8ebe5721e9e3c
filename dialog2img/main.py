"""
Dialog2Img - FastAPI Application
主应用入口
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from dialog2img import __version__
from dialog2img.config_loader import get_config
from dialog2img.routes import api_router
from dialog2img.services.chat_renderer import get_chat_renderer, reset_chat_renderer
from dialog2img.services.errors import FontUnavailable


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    print("[Dialog2Img] Starting up...")

    # 初始化配置
    config = get_config()
    config.on_change(lambda _: reset_chat_renderer())
    config.start_watching()
    print(f"[Config] Loaded from {config.path}")
    print(f"[Config] Canvas: {config.layout_settings.width}x{config.layout_settings.height}")
    print(f"[Config] Output: {config.output_settings.images_dir}")

    # 预加载字体
    try:
        get_chat_renderer()
        print("[Renderer] Font loaded")
    except FontUnavailable as e:
        print(f"[Renderer] Warning: {e}")

    yield

    # 关闭时
    print("[Dialog2Img] Shutting down...")
    config.stop_watching()


# 创建 FastAPI 应用
app = FastAPI(
    title="Dialog2Img",
    description="将对话文本渲染为聊天气泡截图",
    version=__version__,
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 静态文件服务（生成的图片、动画和视频）
output_dir = get_config().output_settings.images_dir
output_dir.mkdir(parents=True, exist_ok=True)
app.mount("/output", StaticFiles(directory=str(output_dir)), name="output")


# ==================== 路由注册 ====================

app.include_router(api_router, prefix="/api")


# ==================== 根路由 ====================

@app.get("/")
async def root():
    """根路由 - 健康检查"""
    return {
        "service": "Dialog2Img",
        "status": "running",
        "version": __version__
    }


@app.get("/health")
async def health_check():
    """健康检查端点"""
    config = get_config()
    return {
        "status": "healthy",
        "config_loaded": True,
        "canvas": {
            "width": config.layout_settings.width,
            "height": config.layout_settings.height
        }
    }


# ==================== 启动入口 ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dialog2img.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )

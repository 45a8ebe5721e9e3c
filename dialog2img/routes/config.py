"""
Configuration API Routes
配置管理相关接口
"""

from dataclasses import asdict
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from dialog2img.config_loader import get_config
from dialog2img.services.chat_renderer import reset_chat_renderer


router = APIRouter()


class ConfigResponse(BaseModel):
    """配置响应"""
    config_path: str
    layout: dict
    colors: dict
    animation: dict
    video: dict
    output: dict


@router.get("", response_model=ConfigResponse)
async def get_current_config():
    """获取当前配置"""
    config = get_config()
    return ConfigResponse(
        config_path=str(config.path),
        layout=asdict(config.layout_settings),
        colors=asdict(config.color_settings),
        animation=asdict(config.animation_settings),
        video=asdict(config.video_settings),
        output={
            "images_path": str(config.output_settings.images_dir),
            "debug": config.output_settings.debug
        }
    )


@router.post("/reload")
async def reload_config():
    """重新加载配置文件"""
    try:
        # 重置缓存的渲染器
        reset_chat_renderer()
        config = get_config()
        config.reload()
        return {"status": "success", "message": "Configuration reloaded"}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

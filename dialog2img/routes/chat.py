"""
Chat API Routes
聊天截图、打字动画与视频叠加接口
"""

import asyncio
import os
import tempfile
import traceback
from pathlib import Path
from typing import Optional
from fastapi import APIRouter, HTTPException, UploadFile, File, Form
from fastapi.responses import Response
from pydantic import BaseModel

from dialog2img.config_loader import get_config
from dialog2img.services.animation import AnimationSequencer
from dialog2img.services.chat_renderer import get_chat_renderer
from dialog2img.services.errors import FontUnavailable
from dialog2img.services.progress import get_progress
from dialog2img.services.video_overlay import VideoOverlay


router = APIRouter()


# ==================== 请求/响应模型 ====================

class ChatRequest(BaseModel):
    """对话渲染请求"""
    dialog: str
    marker: Optional[str] = None


class VideoRequest(BaseModel):
    """视频叠加请求"""
    dialog: str
    video_path: Optional[str] = None


class VideoResponse(BaseModel):
    """视频叠加响应"""
    path: str
    url: str


# ==================== 进度查询 ====================

@router.get("/progress")
async def get_render_progress():
    """Get current animation progress"""
    return get_progress().to_dict()


# ==================== 静态截图 ====================

@router.post("/image")
async def render_image(request: ChatRequest):
    """渲染对话为 PNG"""
    try:
        renderer = get_chat_renderer()
        data = await asyncio.to_thread(renderer.render, request.dialog, None, request.marker)
        return Response(content=data, media_type="image/png")
    except FontUnavailable as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/image/upload")
async def render_image_with_background(
    dialog: str = Form(...),
    marker: Optional[str] = Form(default=None),
    background: Optional[UploadFile] = File(default=None)
):
    """带背景图渲染，背景图尺寸决定画布尺寸"""
    background_path: Optional[Path] = None
    try:
        if background is not None and background.filename:
            suffix = Path(background.filename).suffix or ".img"
            fd, tmp = tempfile.mkstemp(prefix="d2i_bg_", suffix=suffix)
            with os.fdopen(fd, "wb") as f:
                f.write(await background.read())
            background_path = Path(tmp)

        renderer = get_chat_renderer()
        data = await asyncio.to_thread(renderer.render, dialog, background_path, marker)
        return Response(content=data, media_type="image/png")

    except FontUnavailable as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        if background_path is not None:
            background_path.unlink(missing_ok=True)


# ==================== 打字动画 ====================

@router.post("/animation")
async def render_animation(request: ChatRequest):
    """渲染打字动画 GIF"""
    try:
        sequencer = AnimationSequencer(get_chat_renderer(), get_config().animation_settings)
        data = await asyncio.to_thread(sequencer.render_gif, request.dialog, None, request.marker)
        return Response(content=data, media_type="image/gif")
    except FontUnavailable as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(e))


# ==================== 视频叠加 ====================

@router.post("/video", response_model=VideoResponse)
async def render_video(request: VideoRequest):
    """渲染截图并叠加到视频上"""
    try:
        overlay = VideoOverlay(get_chat_renderer(), get_config().video_settings)
        output = await asyncio.to_thread(overlay.create_video, request.dialog, request.video_path)
    except FontUnavailable as e:
        raise HTTPException(status_code=500, detail=str(e))

    if output is None:
        raise HTTPException(status_code=500, detail="Video overlay failed")

    return VideoResponse(path=str(output), url=f"/output/{output.name}")

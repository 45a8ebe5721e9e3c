"""
Chat Renderer Service
聊天截图渲染 - 解析对话、排版气泡并输出 PNG

流程:
1. 可选加载背景图（背景图尺寸优先于配置尺寸）
2. 解析对话文本
3. 逐条消息：换行 -> 计算气泡 -> 绘制气泡、尾巴、文字
4. 编码输出
"""

import hashlib
import random
import time
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image

from dialog2img.config_loader import get_config

from .canvas import Canvas
from .dialog_parser import Message, parse_dialog
from .errors import BackgroundImageUnreadable
from .layout import BubbleGeometry, BubbleLayoutEngine, LayoutConfig
from .text_metrics import TextMetrics
from .text_wrapper import TextWrapper


def generate_filename(extension: str) -> str:
    """随机文件名：时间戳 + 短哈希"""
    now = time.time()
    unique = f"{int(now):08x}{int((now % 1) * 1_000_000):05x}"
    digest = hashlib.md5(str(random.random()).encode()).hexdigest()[:5]
    return f"{unique}_{digest}.{extension}"


class ChatRenderer:
    """
    聊天截图渲染器

    配置在构造时确定；要修改配置请创建新的渲染器。
    每次渲染使用独立的画布，渲染结束即释放。
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        images_path: Union[str, Path, None] = None,
        debug: bool = False
    ):
        self.config = config or LayoutConfig()
        self.images_path = Path(images_path) if images_path else Path.cwd() / "output"
        self.debug = debug

        self.metrics = TextMetrics(
            self.config.font_path,
            self.config.font_size,
            self.config.line_spacing
        )
        self.wrapper = TextWrapper(self.metrics)
        self.engine = BubbleLayoutEngine(self.config, self.metrics)

        if self.debug:
            print(f"[ChatRenderer] Font: {self.config.font_path or 'system default'}")

    # ==================== 画布 ====================

    def load_background(self, path: Union[str, Path, None]) -> Optional[Image.Image]:
        """加载背景图，失败时记录日志并返回 None（使用配置的背景）"""
        if not path:
            return None
        try:
            return Canvas.load_background(path)
        except BackgroundImageUnreadable as e:
            print(f"[ChatRenderer] {e}, using configured background")
            return None

    def open_canvas(self, background: Optional[Image.Image] = None) -> Canvas:
        if background is not None:
            return Canvas.from_background(background)
        return Canvas(
            self.config.width,
            self.config.height,
            background_color=self.config.background_color,
            transparent=self.config.transparent
        )

    # ==================== 排版与绘制 ====================

    def layout_messages(self, messages: List[Message], canvas_width: int) -> List[BubbleGeometry]:
        """依次计算每条消息的气泡，游标逐条下移"""
        geometries = []
        cursor_y = self.config.cursor_start
        max_width = self.config.wrap_width(canvas_width)

        for message in messages:
            if not message.text and not self.config.render_empty:
                continue
            lines = self.wrapper.wrap(message.text, max_width)
            geometry = self.engine.layout(message, lines, cursor_y, canvas_width)
            geometries.append(geometry)
            cursor_y = self.engine.advance(geometry)

        return geometries

    def draw_bubble(self, canvas: Canvas, geometry: BubbleGeometry) -> None:
        color = self.config.bubble_color(geometry.speaker)
        canvas.rounded_rectangle(geometry.box, self.config.radius, color)
        canvas.polygon(geometry.tail, color)
        canvas.text_block(geometry.lines, geometry.text_origin, self.metrics, self.config.text_color)

    def draw_messages(self, canvas: Canvas, messages: List[Message]) -> List[BubbleGeometry]:
        """在画布上绘制所有消息，返回各气泡的几何信息"""
        geometries = self.layout_messages(messages, canvas.width)
        for geometry in geometries:
            if self.debug:
                print(f"[ChatRenderer] {geometry.speaker.value} bubble at "
                      f"({geometry.x}, {geometry.y}) {geometry.width}x{geometry.height}")
            self.draw_bubble(canvas, geometry)
        return geometries

    # ==================== 对外接口 ====================

    def render(
        self,
        dialog: str,
        background_path: Union[str, Path, None] = None,
        marker: Optional[str] = None
    ) -> bytes:
        """
        渲染对话为 PNG

        Args:
            dialog: 对话文本，每行一条消息
            background_path: 可选背景图路径
            marker: 对方消息的行首标记，默认使用配置

        Returns:
            PNG 编码的图像数据
        """
        messages = parse_dialog(dialog, marker or self.config.marker)
        background = self.load_background(background_path)
        try:
            with self.open_canvas(background) as canvas:
                self.draw_messages(canvas, messages)
                return canvas.to_png_bytes()
        finally:
            if background is not None:
                background.close()

    def output_path(self, extension: str) -> Path:
        """输出目录下的随机文件路径，目录不存在时创建"""
        self.images_path.mkdir(parents=True, exist_ok=True)
        return self.images_path / generate_filename(extension)

    def create(
        self,
        dialog: str,
        background_path: Union[str, Path, None] = None,
        marker: Optional[str] = None
    ) -> Path:
        """渲染并保存 PNG，返回文件路径"""
        data = self.render(dialog, background_path, marker)
        path = self.output_path("png")
        path.write_bytes(data)
        print(f"[ChatRenderer] Saved: {path}")
        return path


# 全局实例
_renderer: Optional[ChatRenderer] = None


def get_chat_renderer() -> ChatRenderer:
    """获取按当前配置创建的渲染器实例"""
    global _renderer
    if _renderer is None:
        config = get_config()
        _renderer = ChatRenderer(
            config.layout_config(),
            images_path=config.output_settings.images_dir,
            debug=config.output_settings.debug
        )
    return _renderer


def reset_chat_renderer():
    """配置变更后重置渲染器"""
    global _renderer
    _renderer = None

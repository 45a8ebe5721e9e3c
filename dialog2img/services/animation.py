"""
Animation Sequencer
打字动画 - 逐条消息生成帧序列并输出 GIF

本机消息先在底部输入框中逐字“打出”，再作为气泡出现；
对方消息直接出现。每帧带显示时长，最后一帧停留更久。
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from PIL import Image

from dialog2img.config_loader import AnimationSettings

from .canvas import Canvas
from .chat_renderer import ChatRenderer
from .dialog_parser import Message, Speaker, parse_dialog
from . import progress


@dataclass
class Frame:
    """一帧图像及其显示时长（毫秒）"""
    image: Image.Image
    duration: int


class AnimationSequencer:
    """Builds the typing-simulation frame sequence for a dialogue"""

    def __init__(self, renderer: ChatRenderer, settings: Optional[AnimationSettings] = None):
        self.renderer = renderer
        self.settings = settings or AnimationSettings()

    def typing_prefixes(self, text: str) -> List[str]:
        """输入框中逐步出现的文字，每帧多显示 typing_step 个字符"""
        step = max(1, self.settings.typing_step)
        prefixes = [text[:n] for n in range(step, len(text), step)]
        if text:
            prefixes.append(text)
        return prefixes

    def count_frames(self, messages: List[Message]) -> int:
        total = len(messages)
        for message in messages:
            if message.speaker is Speaker.LOCAL:
                total += len(self.typing_prefixes(message.text))
        return total

    def draw_input_box(self, canvas: Canvas, text: str) -> None:
        """
        在画布底部绘制固定高度的输入框

        文字超出输入框宽度时只显示末尾部分。
        """
        config = self.renderer.config
        metrics = self.renderer.metrics
        box_height = self.settings.input_box_height

        x1 = config.padding
        x2 = canvas.width - config.padding
        y2 = canvas.height - config.padding
        y1 = y2 - box_height
        canvas.rounded_rectangle((x1, y1, x2, y2), config.radius, self.settings.input_box_color)

        inner_width = x2 - x1 - 2 * config.text_padding
        visible = text
        while len(visible) > 1 and metrics.width(visible) > inner_width:
            visible = visible[1:]

        baseline = y1 + (box_height + config.font_size) // 2
        canvas.text_block([visible], (x1 + config.text_padding, baseline), metrics, config.text_color)

    def render_frame(
        self,
        history: List[Message],
        background: Optional[Image.Image],
        duration: int,
        input_text: Optional[str] = None
    ) -> Frame:
        """渲染一帧，画布在取出帧图像后立即释放"""
        with self.renderer.open_canvas(background) as canvas:
            self.renderer.draw_messages(canvas, history)
            if input_text is not None:
                self.draw_input_box(canvas, input_text)
            return Frame(canvas.to_frame(self.settings.matte), duration)

    def build(
        self,
        dialog: str,
        background_path: Union[str, Path, None] = None,
        marker: Optional[str] = None
    ) -> List[Frame]:
        """
        生成完整帧序列

        Args:
            dialog: 对话文本
            background_path: 可选背景图
            marker: 对方消息标记，默认使用配置

        Returns:
            按播放顺序排列的帧
        """
        s = self.settings
        messages = parse_dialog(dialog, marker or self.renderer.config.marker)
        total = self.count_frames(messages)

        progress.start_rendering(total)

        background = self.renderer.load_background(background_path)
        frames: List[Frame] = []
        history: List[Message] = []
        try:
            for message in messages:
                if message.speaker is Speaker.LOCAL:
                    for prefix in self.typing_prefixes(message.text):
                        frames.append(self.render_frame(history, background, s.typing_delay, prefix + s.cursor))
                        progress.frame_rendered()

                history.append(message)
                frames.append(self.render_frame(history, background, s.message_delay))
                progress.frame_rendered()
        except Exception as e:
            close_frames(frames)
            progress.fail(e)
            raise
        finally:
            if background is not None:
                background.close()

        frames[-1].duration = s.final_delay
        return frames

    def render_gif(
        self,
        dialog: str,
        background_path: Union[str, Path, None] = None,
        marker: Optional[str] = None
    ) -> bytes:
        """生成 GIF 数据"""
        frames = self.build(dialog, background_path, marker)
        progress.start_encoding()
        try:
            buffer = io.BytesIO()
            save_gif(frames, buffer, loop=self.settings.loop)
        except Exception as e:
            progress.fail(e)
            raise
        finally:
            close_frames(frames)

        data = buffer.getvalue()
        progress.finish(f"Encoded {len(frames)} frames ({len(data)} bytes)")
        return data

    def create_gif(
        self,
        dialog: str,
        background_path: Union[str, Path, None] = None,
        marker: Optional[str] = None
    ) -> Path:
        """生成 GIF 并保存到输出目录"""
        data = self.render_gif(dialog, background_path, marker)
        path = self.renderer.output_path("gif")
        path.write_bytes(data)
        print(f"[AnimationSequencer] Saved: {path}")
        return path


def save_gif(frames: List[Frame], target: Union[str, Path, BinaryIO], loop: Optional[int] = 0) -> None:
    """
    按顺序保存为 GIF

    loop=0 无限循环，loop=None 只播放一次。
    """
    if not frames:
        raise ValueError("No frames to save")

    options = {}
    if loop is not None:
        options["loop"] = loop

    frames[0].image.save(
        target,
        format="GIF",
        save_all=True,
        append_images=[f.image for f in frames[1:]],
        duration=[f.duration for f in frames],
        disposal=1,
        **options
    )


def close_frames(frames: List[Frame]) -> None:
    for frame in frames:
        frame.image.close()

"""
Canvas
持有一次渲染的像素画布，提供气泡绘制所需的基本图元
"""

import io
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple, Union

from PIL import Image, ImageDraw

from .errors import BackgroundImageUnreadable
from .text_metrics import Font, TextMetrics


RGB = Tuple[int, int, int]
Point = Tuple[int, int]

TRANSPARENT = (0, 0, 0, 0)


def _rgba(color: Sequence[int]) -> Tuple[int, int, int, int]:
    if len(color) == 4:
        return tuple(color)
    return (color[0], color[1], color[2], 255)


class Canvas:
    """
    一次渲染独占的 RGBA 画布

    绘制直接写入像素（不做 alpha 混合），编码只读取当前状态。
    用 with 语句保证画布在任何退出路径上被释放。
    """

    def __init__(
        self,
        width: int,
        height: int,
        background_color: Optional[RGB] = None,
        transparent: bool = True
    ):
        if transparent or background_color is None:
            fill = TRANSPARENT
        else:
            fill = _rgba(background_color)
        self.image = Image.new("RGBA", (width, height), fill)
        self.draw = ImageDraw.Draw(self.image)

    @classmethod
    def from_background(cls, background: Image.Image) -> "Canvas":
        """以背景图尺寸创建画布并铺上背景"""
        canvas = cls(background.width, background.height, transparent=True)
        canvas.image.paste(background.convert("RGBA"), (0, 0))
        return canvas

    @staticmethod
    def load_background(path: Union[str, Path]) -> Image.Image:
        """
        读取背景图

        Raises:
            BackgroundImageUnreadable: 文件不存在或无法解码
        """
        try:
            with Image.open(path) as img:
                return img.convert("RGBA")
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise BackgroundImageUnreadable(str(path), str(e)) from e

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    # ==================== 图元 ====================

    def rounded_rectangle(self, box: Tuple[int, int, int, int], radius: int, color: RGB) -> None:
        """
        填充圆角矩形

        由一条竖向矩形、一条横向矩形和四个角上直径 2*radius 的圆拼成。
        半径超过宽高一半时按一半处理。
        """
        x1, y1, x2, y2 = box
        r = max(0, min(radius, (x2 - x1) // 2, (y2 - y1) // 2))
        fill = _rgba(color)

        self.draw.rectangle([x1 + r, y1, x2 - r, y2], fill=fill)
        self.draw.rectangle([x1, y1 + r, x2, y2 - r], fill=fill)

        if r == 0:
            return
        for cx, cy in ((x1 + r, y1 + r), (x2 - r, y1 + r), (x1 + r, y2 - r), (x2 - r, y2 - r)):
            self.draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=fill)

    def polygon(self, points: Iterable[Point], color: RGB) -> None:
        """填充多边形（气泡尾巴）"""
        self.draw.polygon(list(points), fill=_rgba(color))

    def text_block(
        self,
        lines: Iterable[str],
        origin: Point,
        metrics: TextMetrics,
        color: RGB
    ) -> None:
        """
        逐行绘制文字

        origin 是第一行的基线左端点，每行下移 metrics.line_pitch。
        """
        x, y = origin
        font: Font = metrics.font
        fill = _rgba(color)
        for line in lines:
            if line:
                self.draw.text((x, y), metrics.renderable(line), font=font, fill=fill, anchor="ls")
            y += metrics.line_pitch

    # ==================== 编码 ====================

    def to_png_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        self.image.save(path, format="PNG")
        return path

    def to_frame(self, matte: RGB = (255, 255, 255)) -> Image.Image:
        """
        生成 GIF 帧（调色板图像）

        透明区域先合成到 matte 底色上。
        """
        flat = Image.new("RGBA", self.image.size, _rgba(matte))
        try:
            flat.alpha_composite(self.image)
            rgb = flat.convert("RGB")
        finally:
            flat.close()
        try:
            return rgb.quantize(colors=256, method=Image.Quantize.MEDIANCUT)
        finally:
            rgb.close()

    def close(self) -> None:
        self.image.close()

    def __enter__(self) -> "Canvas":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={self.width}x{self.height})"

"""
Text Metrics
字体加载与文字尺寸测量

宽高均取自实际渲染的包围盒（right - left, bottom - top），
而不是逐字符 advance 之和，换行判断依赖这个精确宽度。
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from PIL import Image, ImageDraw, ImageFont

from .errors import FontUnavailable, GlyphRenderError


# 未配置字体时依次查找的系统字体
FONT_PATHS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "C:/Windows/Fonts/arial.ttf",
]

# 无法渲染的字符替换为该字符
FALLBACK_GLYPH = "?"

# 任何字体都不会映射的码位（非字符），渲染结果即该字体的 .notdef 字形
UNMAPPED_CODE_POINT = "\U0010FFFF"

# Pillow 可能在渲染字形时抛出的异常
_GLYPH_ERRORS = (UnicodeError, ValueError, OSError)

Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]
GlyphSignature = Tuple[Tuple[int, int, int, int], bytes]


def find_font() -> Optional[str]:
    """查找可用的系统字体"""
    for path in FONT_PATHS:
        if Path(path).exists():
            return path
    return None


@lru_cache(maxsize=16)
def load_font(font_path: Optional[str], size: int) -> Font:
    """
    加载字体，同一路径和字号只加载一次

    显式配置的字体打不开时抛出 FontUnavailable；
    未配置时查找系统字体，最后回退到 Pillow 内置字体。
    """
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError as e:
            raise FontUnavailable(font_path, str(e)) from e

    system_font = find_font()
    if system_font:
        try:
            return ImageFont.truetype(system_font, size)
        except OSError:
            pass
    return ImageFont.load_default(size=size)


class TextMetrics:
    """Measures rendered text extents for one font and size"""

    def __init__(
        self,
        font_path: Optional[str] = None,
        font_size: int = 40,
        line_spacing: float = 1.75
    ):
        self.font_path = font_path
        self.font_size = font_size
        # 多行文字每行基线之间的距离，绘制时使用同样的值
        self.line_pitch = round(font_size * line_spacing)
        self.font = load_font(font_path, font_size)
        self._notdef: Optional[GlyphSignature] = None
        self._notdef_checked = False
        self._renderable_chars: Dict[str, bool] = {}

    def _bbox(self, text: str) -> Tuple[int, int, int, int]:
        return self.font.getbbox(text, anchor="ls")

    def _glyph_signature(self, char: str) -> GlyphSignature:
        """单个字符的包围盒和像素，用于与 .notdef 比较"""
        left, top, right, bottom = self._bbox(char)
        if right <= left or bottom <= top:
            return (left, top, right, bottom), b""
        image = Image.new("L", (right - left, bottom - top))
        ImageDraw.Draw(image).text((-left, -top), char, font=self.font, fill=255, anchor="ls")
        return (left, top, right, bottom), image.tobytes()

    def _notdef_signature(self) -> Optional[GlyphSignature]:
        """
        字体缺字时显示的 .notdef 字形

        FreeType 对缺失的码位不会报错，而是画出 .notdef（通常是方框）。
        空白的 .notdef 无法与空格区分，此时返回 None，不做缺字检测。
        """
        if not self._notdef_checked:
            self._notdef_checked = True
            try:
                signature = self._glyph_signature(UNMAPPED_CODE_POINT)
            except _GLYPH_ERRORS:
                signature = None
            if signature is not None and signature[1].strip(b"\x00"):
                self._notdef = signature
        return self._notdef

    def check_glyph(self, char: str) -> None:
        """Raise GlyphRenderError if the font cannot render `char`."""
        try:
            signature = self._glyph_signature(char)
        except _GLYPH_ERRORS as e:
            raise GlyphRenderError(char) from e
        if char.isspace():
            return
        if signature == self._notdef_signature():
            raise GlyphRenderError(char)

    def _can_render(self, char: str) -> bool:
        known = self._renderable_chars.get(char)
        if known is None:
            try:
                self.check_glyph(char)
                known = True
            except GlyphRenderError:
                known = False
            self._renderable_chars[char] = known
        return known

    def renderable(self, text: str) -> str:
        """Return `text` with unrenderable code points replaced by the fallback glyph."""
        return "".join(c if self._can_render(c) else FALLBACK_GLYPH for c in text)

    def line_box(self, line: str) -> Optional[Tuple[int, int, int, int]]:
        """基线坐标系下单行文字的包围盒，空行返回 None"""
        if not line:
            return None
        return self._bbox(self.renderable(line))

    def measure(self, text: str) -> Tuple[int, int]:
        """
        测量文字块尺寸

        多行文字按 line_pitch 逐行下移后取所有行包围盒的并集，
        整块测量而不是把每行高度相加。

        Args:
            text: 文字，可包含换行符

        Returns:
            (width, height) 像素
        """
        boxes: List[Tuple[int, int, int, int]] = []
        for index, line in enumerate(text.split("\n")):
            box = self.line_box(line)
            if box is None:
                continue
            offset = index * self.line_pitch
            boxes.append((box[0], box[1] + offset, box[2], box[3] + offset))

        if not boxes:
            return (0, 0)

        left = min(b[0] for b in boxes)
        top = min(b[1] for b in boxes)
        right = max(b[2] for b in boxes)
        bottom = max(b[3] for b in boxes)
        return (right - left, bottom - top)

    def width(self, line: str) -> int:
        """单行文字宽度（先去掉首尾空白）"""
        return self.measure(line.strip())[0]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(font={self.font_path or 'default'}, size={self.font_size})"

"""
Bubble Layout Engine
计算每条消息气泡的位置、尺寸、尾巴和文字起点
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .dialog_parser import Message, Speaker, REMOTE_MARKER
from .text_metrics import TextMetrics


RGB = Tuple[int, int, int]
Point = Tuple[int, int]


@dataclass(frozen=True)
class LayoutConfig:
    """渲染配置，构造渲染器时确定，之后不可修改"""
    width: int = 1080
    height: int = 1920
    padding: int = 80               # 气泡到画布边缘的距离
    font_path: Optional[str] = None
    font_size: int = 40
    text_padding: int = 50          # 文字到气泡边缘的距离
    line_gap: int = 20              # 相邻消息之间的垂直间距
    radius: int = 30                # 圆角半径
    start_y: Optional[int] = None   # 第一条消息的 y，默认等于 padding
    line_spacing: float = 1.75      # 行距 = font_size * line_spacing

    # 尾巴形状（固定偏移，不随气泡大小变化）
    tail_inset: int = 20
    tail_reach: int = 30
    tail_top: int = 40
    tail_tip: int = 20

    my_message_color: RGB = (173, 216, 230)
    other_message_color: RGB = (255, 255, 255)
    text_color: RGB = (0, 0, 0)
    background_color: Optional[RGB] = None
    transparent: bool = True

    marker: str = REMOTE_MARKER
    render_empty: bool = True       # 空行是否渲染为空气泡

    @property
    def cursor_start(self) -> int:
        return self.padding if self.start_y is None else self.start_y

    def wrap_width(self, canvas_width: int) -> int:
        """单行文字可用宽度"""
        return canvas_width - 2 * self.padding - 2 * self.text_padding

    def bubble_color(self, speaker: Speaker) -> RGB:
        if speaker is Speaker.LOCAL:
            return self.my_message_color
        return self.other_message_color


@dataclass(frozen=True)
class BubbleGeometry:
    """一条消息的气泡几何信息"""
    speaker: Speaker
    lines: Tuple[str, ...]
    x: int
    y: int
    width: int
    height: int
    tail: Tuple[Point, Point, Point]
    text_origin: Point              # 第一行文字的基线起点

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


class BubbleLayoutEngine:
    """Computes bubble geometry and advances the vertical cursor"""

    def __init__(self, config: LayoutConfig, metrics: TextMetrics):
        self.config = config
        self.metrics = metrics

    def text_block_size(self, lines: List[str]) -> Tuple[int, int]:
        """
        文字块尺寸

        宽度取各行宽度最大值，高度取整块文字（换行拼接后）的包围盒高度。
        """
        if not lines:
            return (0, 0)
        text_width = max(self.metrics.width(line) for line in lines)
        text_height = self.metrics.measure("\n".join(lines))[1]
        return (text_width, text_height)

    def tail_polygon(self, speaker: Speaker, x: int, y: int, width: int, height: int) -> Tuple[Point, Point, Point]:
        """气泡尾巴：本机消息在右下角朝右，对方消息在左下角朝左"""
        c = self.config
        bottom = y + height

        if speaker is Speaker.LOCAL:
            right = x + width
            return (
                (right - c.tail_inset, bottom - c.tail_top),
                (right + c.tail_reach, bottom - c.tail_tip),
                (right - c.tail_inset, bottom),
            )

        return (
            (x + c.tail_inset, bottom - c.tail_top),
            (x - c.tail_reach, bottom - c.tail_tip),
            (x + c.tail_inset, bottom),
        )

    def layout(self, message: Message, lines: List[str], cursor_y: int, canvas_width: int) -> BubbleGeometry:
        """
        计算单条消息的气泡

        Args:
            message: 消息
            lines: 换行后的文字
            cursor_y: 当前垂直游标，即气泡顶边
            canvas_width: 画布宽度（加载背景图时取背景图宽度）
        """
        c = self.config
        text_width, text_height = self.text_block_size(lines)
        width = text_width + 2 * c.text_padding
        height = text_height + 2 * c.text_padding

        if message.speaker is Speaker.LOCAL:
            x = canvas_width - width - c.padding
        else:
            x = c.padding
        y = cursor_y

        return BubbleGeometry(
            speaker=message.speaker,
            lines=tuple(lines),
            x=x,
            y=y,
            width=width,
            height=height,
            tail=self.tail_polygon(message.speaker, x, y, width, height),
            text_origin=(x + c.text_padding, y + c.text_padding + c.font_size),
        )

    def advance(self, geometry: BubbleGeometry) -> int:
        """下一条消息的游标位置"""
        return geometry.y + geometry.height + self.config.line_gap

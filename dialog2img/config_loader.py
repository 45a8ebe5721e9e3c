"""
Configuration Loader Module
从 config/render_config.yaml 读取配置，支持环境变量替换和热更新
"""

import os
import re
import yaml
from pathlib import Path
from typing import Any, Optional, Tuple
from dataclasses import dataclass
from PIL import ImageColor
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler
import threading

from dialog2img.services.layout import LayoutConfig


# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
RENDER_CONFIG_PATH = Path(os.environ.get("DIALOG2IMG_CONFIG", CONFIG_DIR / "render_config.yaml"))

RGB = Tuple[int, int, int]


def expand_env_vars(value: Any) -> Any:
    """递归替换配置中的环境变量 ${VAR_NAME}"""
    if isinstance(value, str):
        pattern = r'\$\{([^}]+)\}'
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def parse_color(value: Any, default: Optional[RGB]) -> Optional[RGB]:
    """颜色可写成 [r, g, b] 或 "#RRGGBB" / 颜色名"""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return ImageColor.getrgb(value)[:3]
    r, g, b = (int(v) for v in list(value)[:3])
    return (r, g, b)


def resolve_path(value: Optional[str]) -> Optional[str]:
    """相对路径按项目根目录解析"""
    if not value:
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return str(path)


@dataclass
class LayoutSettings:
    """排版设置"""
    width: int = 1080
    height: int = 1920
    padding: int = 80
    font_path: Optional[str] = None
    font_size: int = 40
    text_padding: int = 50
    line_gap: int = 20
    radius: int = 30
    start_y: Optional[int] = None
    line_spacing: float = 1.75
    tail_inset: int = 20
    tail_reach: int = 30
    tail_top: int = 40
    tail_tip: int = 20
    marker: str = "*"
    render_empty: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "LayoutSettings":
        start_y = data.get("start_y")
        return cls(
            width=int(data.get("width", 1080)),
            height=int(data.get("height", 1920)),
            padding=int(data.get("padding", 80)),
            font_path=resolve_path(data.get("font_path")),
            font_size=int(data.get("font_size", 40)),
            text_padding=int(data.get("text_padding", 50)),
            line_gap=int(data.get("line_gap", 20)),
            radius=int(data.get("radius", 30)),
            start_y=int(start_y) if start_y is not None else None,
            line_spacing=float(data.get("line_spacing", 1.75)),
            tail_inset=int(data.get("tail_inset", 20)),
            tail_reach=int(data.get("tail_reach", 30)),
            tail_top=int(data.get("tail_top", 40)),
            tail_tip=int(data.get("tail_tip", 20)),
            marker=str(data.get("marker") or "*"),
            render_empty=bool(data.get("render_empty", True))
        )


@dataclass
class ColorSettings:
    """颜色设置"""
    my_message: RGB = (173, 216, 230)
    other_message: RGB = (255, 255, 255)
    text: RGB = (0, 0, 0)
    background: Optional[RGB] = None
    transparent: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "ColorSettings":
        return cls(
            my_message=parse_color(data.get("my_message"), (173, 216, 230)),
            other_message=parse_color(data.get("other_message"), (255, 255, 255)),
            text=parse_color(data.get("text"), (0, 0, 0)),
            background=parse_color(data.get("background"), None),
            transparent=bool(data.get("transparent", True))
        )


@dataclass
class AnimationSettings:
    """打字动画设置（时间单位：毫秒）"""
    typing_step: int = 3
    typing_delay: int = 60
    message_delay: int = 800
    final_delay: int = 3000
    input_box_height: int = 140
    input_box_color: RGB = (240, 240, 240)
    cursor: str = "|"
    matte: RGB = (255, 255, 255)
    loop: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "AnimationSettings":
        return cls(
            typing_step=max(1, int(data.get("typing_step", 3))),
            typing_delay=int(data.get("typing_delay", 60)),
            message_delay=int(data.get("message_delay", 800)),
            final_delay=int(data.get("final_delay", 3000)),
            input_box_height=int(data.get("input_box_height", 140)),
            input_box_color=parse_color(data.get("input_box_color"), (240, 240, 240)),
            cursor=str(data.get("cursor", "|")),
            matte=parse_color(data.get("matte"), (255, 255, 255)),
            loop=int(data.get("loop", 0))
        )


@dataclass
class VideoSettings:
    """视频叠加设置"""
    source_path: Optional[str] = None
    ffmpeg: str = "ffmpeg"
    timeout: float = 300.0
    download_timeout: float = 60.0

    @classmethod
    def from_dict(cls, data: dict) -> "VideoSettings":
        source = data.get("source_path") or None
        if source and not source.startswith(("http://", "https://")):
            source = resolve_path(source)
        return cls(
            source_path=source,
            ffmpeg=data.get("ffmpeg", "ffmpeg"),
            timeout=float(data.get("timeout", 300.0)),
            download_timeout=float(data.get("download_timeout", 60.0))
        )


@dataclass
class OutputSettings:
    """输出设置"""
    images_path: str = "output"
    debug: bool = False

    @property
    def images_dir(self) -> Path:
        return Path(resolve_path(self.images_path) or PROJECT_ROOT / "output")

    @classmethod
    def from_dict(cls, data: dict) -> "OutputSettings":
        return cls(
            images_path=data.get("images_path") or "output",
            debug=bool(data.get("debug", False))
        )


class ConfigChangeHandler(FileSystemEventHandler):
    """配置文件变更监听器"""
    def __init__(self, filename: str, callback):
        self.filename = filename
        self.callback = callback

    def on_modified(self, event):
        if event.src_path.endswith(self.filename):
            self.callback()


class ConfigManager:
    """配置管理器 - 单例模式"""
    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self._path: Path = RENDER_CONFIG_PATH
        self._layout: LayoutSettings = LayoutSettings()
        self._colors: ColorSettings = ColorSettings()
        self._animation: AnimationSettings = AnimationSettings()
        self._video: VideoSettings = VideoSettings()
        self._output: OutputSettings = OutputSettings()
        self._observer: Optional[Observer] = None
        self._callbacks: list = []
        self.reload()

    def reload(self, path: Optional[Path] = None) -> None:
        """重新加载配置文件，文件不存在时使用默认值"""
        if path is not None:
            self._path = Path(path)

        try:
            if self._path.exists():
                with open(self._path, "r", encoding="utf-8") as f:
                    raw_config = yaml.safe_load(f) or {}
            else:
                print(f"[ConfigManager] {self._path} not found, using defaults")
                raw_config = {}

            # 展开环境变量
            data = expand_env_vars(raw_config)

            self._layout = LayoutSettings.from_dict(data.get("layout") or {})
            self._colors = ColorSettings.from_dict(data.get("colors") or {})
            self._animation = AnimationSettings.from_dict(data.get("animation") or {})
            self._video = VideoSettings.from_dict(data.get("video") or {})
            self._output = OutputSettings.from_dict(data.get("output") or {})

            # 触发回调
            for callback in self._callbacks:
                callback(self)

        except Exception as e:
            print(f"[ConfigManager] Failed to load config: {e}")
            raise

    def start_watching(self) -> None:
        """启动配置文件热更新监听"""
        if self._observer is not None:
            return
        if not self._path.parent.exists():
            print(f"[ConfigManager] {self._path.parent} does not exist, hot reload disabled")
            return

        self._observer = Observer()
        handler = ConfigChangeHandler(self._path.name, self.reload)
        self._observer.schedule(handler, str(self._path.parent), recursive=False)
        self._observer.start()
        print(f"[ConfigManager] Watching config changes at {self._path.parent}")

    def stop_watching(self) -> None:
        """停止配置文件监听"""
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def on_change(self, callback) -> None:
        """注册配置变更回调"""
        self._callbacks.append(callback)

    # ==================== 属性访问 ====================

    @property
    def path(self) -> Path:
        return self._path

    @property
    def layout_settings(self) -> LayoutSettings:
        return self._layout

    @property
    def color_settings(self) -> ColorSettings:
        return self._colors

    @property
    def animation_settings(self) -> AnimationSettings:
        return self._animation

    @property
    def video_settings(self) -> VideoSettings:
        return self._video

    @property
    def output_settings(self) -> OutputSettings:
        return self._output

    def layout_config(self) -> LayoutConfig:
        """合并排版与颜色设置，生成不可变的 LayoutConfig"""
        layout = self._layout
        colors = self._colors
        return LayoutConfig(
            width=layout.width,
            height=layout.height,
            padding=layout.padding,
            font_path=layout.font_path,
            font_size=layout.font_size,
            text_padding=layout.text_padding,
            line_gap=layout.line_gap,
            radius=layout.radius,
            start_y=layout.start_y,
            line_spacing=layout.line_spacing,
            tail_inset=layout.tail_inset,
            tail_reach=layout.tail_reach,
            tail_top=layout.tail_top,
            tail_tip=layout.tail_tip,
            my_message_color=colors.my_message,
            other_message_color=colors.other_message,
            text_color=colors.text,
            background_color=colors.background,
            transparent=colors.transparent,
            marker=layout.marker,
            render_empty=layout.render_empty
        )


# 全局配置实例
config = ConfigManager()


def get_config() -> ConfigManager:
    """获取配置管理器实例"""
    return config

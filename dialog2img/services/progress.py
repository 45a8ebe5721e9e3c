"""
Animation Progress
打字动画的渲染进度：逐帧渲染 -> GIF 编码 -> 完成

动画在工作线程中生成，/api/chat/progress 在事件循环中读取，
所有状态变更都在锁内进行，读取时返回快照。
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Optional


IDLE = "idle"
RENDERING = "rendering"
ENCODING = "encoding"
COMPLETED = "completed"
ERROR = "error"


@dataclass
class RenderProgress:
    """一次动画生成的进度快照"""
    stage: str = IDLE
    current_frame: int = 0
    total_frames: int = 0
    message: str = ""
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    @property
    def elapsed_ms(self) -> int:
        if self.started_at is None:
            return 0
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return int((end - self.started_at) * 1000)

    @property
    def percent(self) -> int:
        if self.stage == COMPLETED:
            return 100
        if self.total_frames <= 0:
            return 0
        return round(self.current_frame / self.total_frames * 100)

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "current_frame": self.current_frame,
            "total_frames": self.total_frames,
            "message": self.message,
            "progress_percent": self.percent,
            "elapsed_ms": self.elapsed_ms
        }


_progress = RenderProgress()
_lock = threading.Lock()


def get_progress() -> RenderProgress:
    """返回当前进度的副本"""
    with _lock:
        return replace(_progress)


def start_rendering(total_frames: int) -> None:
    """开始新的动画，之前的进度被丢弃"""
    global _progress
    with _lock:
        _progress = RenderProgress(
            stage=RENDERING,
            total_frames=total_frames,
            message=f"Rendering {total_frames} frames",
            started_at=time.monotonic()
        )


def frame_rendered() -> None:
    with _lock:
        _progress.current_frame += 1


def start_encoding() -> None:
    with _lock:
        _progress.stage = ENCODING
        _progress.message = f"Encoding {_progress.current_frame} frames as GIF"


def finish(message: str = "") -> None:
    with _lock:
        _progress.stage = COMPLETED
        _progress.message = message
        _progress.finished_at = time.monotonic()


def fail(error: Exception) -> None:
    with _lock:
        _progress.stage = ERROR
        _progress.message = str(error)
        _progress.finished_at = time.monotonic()


def reset_progress() -> None:
    global _progress
    with _lock:
        _progress = RenderProgress()

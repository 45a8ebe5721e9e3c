"""
Video Overlay Service
将聊天截图叠加到视频上（调用外部 ffmpeg）

失败时返回 None 而不是抛出异常，视频合成不属于渲染核心。
"""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Union

import httpx

from dialog2img.config_loader import VideoSettings

from .chat_renderer import ChatRenderer


Source = Union[str, Path]


def is_url(source: Source) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


class VideoOverlay:
    """Overlays a rendered chat image on top of a video with ffmpeg"""

    def __init__(self, renderer: ChatRenderer, settings: Optional[VideoSettings] = None):
        self.renderer = renderer
        self.settings = settings or VideoSettings()

    def _fetch(self, source: Source, suffix: str) -> Path:
        """把 URL 或本地文件复制到临时文件"""
        fd, tmp = tempfile.mkstemp(prefix="d2i_", suffix=suffix)
        os.close(fd)
        tmp_path = Path(tmp)
        try:
            if is_url(source):
                response = httpx.get(
                    str(source),
                    follow_redirects=True,
                    timeout=self.settings.download_timeout
                )
                response.raise_for_status()
                tmp_path.write_bytes(response.content)
            else:
                shutil.copyfile(source, tmp_path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
        return tmp_path

    def build_command(self, video: Path, image: Path, output: Path) -> List[str]:
        return [
            self.settings.ffmpeg,
            "-i", str(video),
            "-i", str(image),
            "-filter_complex", "[0:v][1:v] overlay=0:0",
            "-codec:a", "copy",
            "-y", str(output)
        ]

    def overlay_image_on_video(self, video: Source, image: Source) -> Optional[Path]:
        """
        把图片叠加在视频左上角

        Args:
            video: 视频 URL 或本地路径
            image: 图片 URL 或本地路径

        Returns:
            输出视频路径，失败返回 None
        """
        if shutil.which(self.settings.ffmpeg) is None:
            print(f"[VideoOverlay] Error: {self.settings.ffmpeg} is not installed or not in PATH")
            return None

        temp_files: List[Path] = []
        try:
            try:
                video_tmp = self._fetch(video, ".mp4")
                temp_files.append(video_tmp)
                image_tmp = self._fetch(image, ".png")
                temp_files.append(image_tmp)
            except (httpx.HTTPError, OSError) as e:
                print(f"[VideoOverlay] Error: failed to load inputs: {e}")
                return None

            if video_tmp.stat().st_size == 0 or image_tmp.stat().st_size == 0:
                print("[VideoOverlay] Error: video or image is empty")
                print(f"[VideoOverlay] Video: {video}")
                print(f"[VideoOverlay] Image: {image}")
                return None

            output = self.renderer.output_path("mp4")
            cmd = self.build_command(video_tmp, image_tmp, output)
            if self.renderer.debug:
                print(f"[VideoOverlay] Running: {' '.join(cmd)}")

            try:
                proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.settings.timeout)
            except subprocess.TimeoutExpired:
                print(f"[VideoOverlay] Error: ffmpeg timed out after {self.settings.timeout}s")
                return None

            if proc.returncode != 0:
                print(f"[VideoOverlay] ffmpeg error (exit {proc.returncode})")
                if self.renderer.debug and proc.stderr:
                    print(proc.stderr[-2000:])
                return None

            print(f"[VideoOverlay] Saved: {output}")
            return output

        finally:
            for path in temp_files:
                path.unlink(missing_ok=True)

    def create_video(self, dialog: str, video: Optional[Source] = None) -> Optional[Path]:
        """渲染对话截图并叠加到视频上，视频默认取配置中的 source_path"""
        source = video or self.settings.source_path
        if not source:
            print("[VideoOverlay] Error: no source video configured")
            return None

        image = self.renderer.create(dialog)
        return self.overlay_image_on_video(source, image)

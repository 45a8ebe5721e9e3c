import shutil
import subprocess
from pathlib import Path

import httpx
from PIL import Image
import pytest

from dialog2img.config_loader import VideoSettings
from dialog2img.services import video_overlay
from dialog2img.services.video_overlay import VideoOverlay


@pytest.fixture
def overlay(small_renderer):
    return VideoOverlay(small_renderer, VideoSettings(ffmpeg="ffmpeg", timeout=5))


@pytest.fixture
def inputs(tmp_path):
    video = tmp_path / "in.mp4"
    video.write_bytes(b"fake video")
    image = tmp_path / "chat.png"
    image.write_bytes(b"fake image")
    return video, image


@pytest.fixture
def ffmpeg_present(monkeypatch):
    monkeypatch.setattr(video_overlay.shutil, "which", lambda name: f"/usr/bin/{name}")


class FakeRun:
    def __init__(self):
        self.calls = []
        self.returncode = 0

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        return subprocess.CompletedProcess(cmd, self.returncode, "", "boom")


@pytest.fixture
def fake_run(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr(video_overlay.subprocess, "run", fake)
    return fake


def test_missing_ffmpeg(overlay, inputs, monkeypatch, capsys):
    monkeypatch.setattr(video_overlay.shutil, "which", lambda name: None)
    assert overlay.overlay_image_on_video(*inputs) is None
    assert "not installed" in capsys.readouterr().out


def test_overlay_success(overlay, inputs, ffmpeg_present, fake_run, tmp_path):
    output = overlay.overlay_image_on_video(*inputs)

    assert output is not None
    assert output.parent == tmp_path
    assert output.suffix == ".mp4"

    [cmd] = fake_run.calls
    assert cmd[0] == "ffmpeg"
    assert "[0:v][1:v] overlay=0:0" in cmd
    assert cmd[-1] == str(output)
    # 临时文件已删除
    video_tmp, image_tmp = cmd[2], cmd[4]
    assert not Path(video_tmp).exists()
    assert not Path(image_tmp).exists()


def test_ffmpeg_failure(overlay, inputs, ffmpeg_present, fake_run):
    fake_run.returncode = 1
    assert overlay.overlay_image_on_video(*inputs) is None


def test_ffmpeg_timeout(overlay, inputs, ffmpeg_present, monkeypatch):
    def run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(video_overlay.subprocess, "run", run)
    assert overlay.overlay_image_on_video(*inputs) is None


def test_empty_input(overlay, inputs, ffmpeg_present, fake_run):
    video, image = inputs
    video.write_bytes(b"")
    assert overlay.overlay_image_on_video(video, image) is None
    assert fake_run.calls == []


def test_missing_input(overlay, inputs, ffmpeg_present, fake_run, tmp_path):
    _, image = inputs
    assert overlay.overlay_image_on_video(tmp_path / "nope.mp4", image) is None
    assert fake_run.calls == []


def test_download_from_url(overlay, inputs, ffmpeg_present, fake_run, monkeypatch):
    requested = []

    def get(url, **kwargs):
        requested.append(url)
        return httpx.Response(200, content=b"remote video", request=httpx.Request("GET", url))

    monkeypatch.setattr(video_overlay.httpx, "get", get)
    _, image = inputs
    assert overlay.overlay_image_on_video("https://example.com/clip.mp4", image) is not None
    assert requested == ["https://example.com/clip.mp4"]


def test_download_failure(overlay, inputs, ffmpeg_present, fake_run, monkeypatch):
    def get(url, **kwargs):
        return httpx.Response(404, request=httpx.Request("GET", url))

    monkeypatch.setattr(video_overlay.httpx, "get", get)
    _, image = inputs
    assert overlay.overlay_image_on_video("https://example.com/missing.mp4", image) is None
    assert fake_run.calls == []


def test_create_video_without_source(overlay):
    assert overlay.create_video("Hello") is None


def test_create_video(small_renderer, inputs, ffmpeg_present, fake_run):
    video, _ = inputs
    overlay = VideoOverlay(small_renderer, VideoSettings(source_path=str(video)))
    output = overlay.create_video("*Hi\nHello")
    assert output is not None
    [cmd] = fake_run.calls
    # 输入顺序：视频在前，图片在后
    assert cmd[2].endswith(".mp4")
    assert cmd[4].endswith(".png")


def test_image_is_top_layer(overlay):
    cmd = overlay.build_command(Path("in.mp4"), Path("chat.png"), Path("out.mp4"))
    assert cmd[cmd.index("-i") + 1] == "in.mp4"
    assert cmd[cmd.index("-i", 3) + 1] == "chat.png"
    # 第一个标签是底层，第二个叠加在上面
    assert cmd[cmd.index("-filter_complex") + 1].startswith("[0:v][1:v]")


@pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed")
def test_overlay_covers_video_with_real_ffmpeg(small_renderer, tmp_path):
    video = tmp_path / "red.mp4"
    subprocess.run(
        ["ffmpeg", "-f", "lavfi", "-i", "color=c=red:s=400x600:d=1",
         "-pix_fmt", "yuv420p", "-y", str(video)],
        check=True, capture_output=True
    )
    image = tmp_path / "blue.png"
    Image.new("RGB", (400, 600), (0, 0, 255)).save(image)

    overlay = VideoOverlay(small_renderer, VideoSettings(timeout=60))
    output = overlay.overlay_image_on_video(video, image)
    assert output is not None

    frame = tmp_path / "frame.png"
    subprocess.run(
        ["ffmpeg", "-i", str(output), "-frames:v", "1", "-y", str(frame)],
        check=True, capture_output=True
    )
    with Image.open(frame) as img:
        r, g, b = img.convert("RGB").getpixel((200, 300))
    assert b > 200 and r < 60

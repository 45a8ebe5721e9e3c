from PIL import Image
import pytest

from dialog2img.services.canvas import Canvas
from dialog2img.services.errors import BackgroundImageUnreadable


BLUE = (173, 216, 230)


def test_transparent_background():
    with Canvas(50, 40) as canvas:
        assert canvas.size == (50, 40)
        assert canvas.image.mode == "RGBA"
        assert canvas.image.getpixel((10, 10)) == (0, 0, 0, 0)


def test_solid_background():
    with Canvas(50, 40, background_color=(240, 240, 240), transparent=False) as canvas:
        assert canvas.image.getpixel((0, 0)) == (240, 240, 240, 255)


def test_transparent_flag_wins_over_color():
    with Canvas(50, 40, background_color=(240, 240, 240), transparent=True) as canvas:
        assert canvas.image.getpixel((0, 0))[3] == 0


def test_rounded_rectangle_corners():
    with Canvas(200, 200) as canvas:
        canvas.rounded_rectangle((20, 20, 180, 120), 30, BLUE)
        pixel = canvas.image.getpixel
        # 四角留空，边和中心被填充
        assert pixel((20, 20))[3] == 0
        assert pixel((180, 120))[3] == 0
        assert pixel((100, 20)) == BLUE + (255,)
        assert pixel((20, 70)) == BLUE + (255,)
        assert pixel((100, 70)) == BLUE + (255,)
        assert pixel((30, 30)) == BLUE + (255,)
        assert pixel((10, 10))[3] == 0


def test_radius_larger_than_box_is_clamped():
    with Canvas(100, 100) as canvas:
        canvas.rounded_rectangle((10, 10, 30, 20), 30, BLUE)
        assert canvas.image.getpixel((20, 15)) == BLUE + (255,)


def test_polygon_fill():
    with Canvas(100, 100) as canvas:
        canvas.polygon([(10, 10), (90, 50), (10, 90)], BLUE)
        assert canvas.image.getpixel((30, 50)) == BLUE + (255,)
        assert canvas.image.getpixel((80, 20))[3] == 0


def test_text_block_draws_pixels(metrics):
    with Canvas(400, 300) as canvas:
        canvas.text_block(["Hello", "", "World"], (10, 60), metrics, (0, 0, 0))
        assert canvas.image.getbbox() is not None


def test_from_background_uses_background_size():
    background = Image.new("RGB", (80, 60), (10, 20, 30))
    with Canvas.from_background(background) as canvas:
        assert canvas.size == (80, 60)
        assert canvas.image.getpixel((5, 5)) == (10, 20, 30, 255)


def test_load_background(tmp_path):
    path = tmp_path / "bg.jpg"
    Image.new("RGB", (64, 48), (200, 0, 0)).save(path)
    background = Canvas.load_background(path)
    assert background.size == (64, 48)
    assert background.mode == "RGBA"


def test_load_background_missing(tmp_path):
    with pytest.raises(BackgroundImageUnreadable):
        Canvas.load_background(tmp_path / "missing.jpg")


def test_load_background_corrupt(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"definitely not a jpeg")
    with pytest.raises(BackgroundImageUnreadable):
        Canvas.load_background(path)


def test_png_encoding():
    with Canvas(20, 20) as canvas:
        data = canvas.to_png_bytes()
    assert data.startswith(b"\x89PNG\r\n\x1a\n")


def test_save(tmp_path):
    with Canvas(20, 20) as canvas:
        path = canvas.save(tmp_path / "out.png")
    with Image.open(path) as img:
        assert img.size == (20, 20)


def test_frame_is_palette_image():
    with Canvas(30, 30) as canvas:
        canvas.rounded_rectangle((0, 0, 29, 29), 5, BLUE)
        frame = canvas.to_frame()
    assert frame.mode == "P"
    assert frame.size == (30, 30)
    assert frame.convert("RGB").getpixel((15, 15)) == BLUE

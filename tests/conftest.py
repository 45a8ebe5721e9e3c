import pytest

from dialog2img.services.chat_renderer import ChatRenderer
from dialog2img.services.layout import LayoutConfig
from dialog2img.services.text_metrics import TextMetrics


SMALL_LAYOUT = dict(
    width=400,
    height=600,
    padding=20,
    font_size=16,
    text_padding=10,
    line_gap=8,
    radius=10,
)


@pytest.fixture
def metrics():
    return TextMetrics(None, 40)


@pytest.fixture
def layout_config():
    return LayoutConfig()


@pytest.fixture
def renderer(tmp_path):
    return ChatRenderer(LayoutConfig(), images_path=tmp_path)


@pytest.fixture
def small_renderer(tmp_path):
    return ChatRenderer(LayoutConfig(**SMALL_LAYOUT), images_path=tmp_path)

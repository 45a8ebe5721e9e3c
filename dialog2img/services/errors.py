"""
Rendering Errors
渲染过程中的异常类型
"""


class Dialog2ImgError(Exception):
    """Base class for all rendering errors"""


class FontUnavailable(Dialog2ImgError):
    """The configured font could not be loaded. Rendering cannot proceed."""

    def __init__(self, font_path: str, reason: str = ""):
        self.font_path = font_path
        message = f"Font unavailable: {font_path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class GlyphRenderError(Dialog2ImgError):
    """A code point has no renderable glyph in the active font"""

    def __init__(self, char: str):
        self.char = char
        super().__init__(f"No renderable glyph for U+{ord(char):04X}")


class BackgroundImageUnreadable(Dialog2ImgError):
    """The background image is missing or cannot be decoded"""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Background image unreadable: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)

"""
Dialog2Img
将纯文本对话渲染为聊天气泡截图
"""

__version__ = "0.1.0"

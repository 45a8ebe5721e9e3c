"""
Services Module
对话解析、文字排版与气泡渲染
"""

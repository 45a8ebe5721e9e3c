"""
Text Wrapper
按像素宽度贪心换行
"""

from typing import List

from .text_metrics import TextMetrics


class TextWrapper:
    """Greedy word wrap to a maximum pixel width"""

    def __init__(self, metrics: TextMetrics):
        self.metrics = metrics

    def wrap(self, text: str, max_width: int) -> List[str]:
        """
        按单个空格切词，逐词累加，超宽时另起一行

        单个超宽单词独占一行，不按字符拆分。
        行内的连续空格原样保留，行首行尾的空白去掉。

        Args:
            text: 原始文本
            max_width: 每行最大像素宽度

        Returns:
            换行后的文本列表，空白文本返回空列表
        """
        lines: List[str] = []
        line = ""

        for word in text.split(" "):
            candidate = line + " " + word
            if self.metrics.width(candidate) > max_width and line.strip():
                lines.append(line.strip())
                line = word
            else:
                line = candidate

        if line.strip():
            lines.append(line.strip())
        return lines

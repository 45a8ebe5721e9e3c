"""
Dialog Parser
将多行对话文本解析为消息列表
"""

from dataclasses import dataclass
from enum import Enum
from typing import List


REMOTE_MARKER = "*"


class Speaker(str, Enum):
    """对话双方"""
    LOCAL = "me"        # 本机用户，气泡靠右
    REMOTE = "other"    # 对方，气泡靠左


@dataclass(frozen=True)
class Message:
    """一条消息"""
    speaker: Speaker
    text: str

    @classmethod
    def from_line(cls, line: str, marker: str = REMOTE_MARKER) -> "Message":
        if marker and line.startswith(marker):
            return cls(speaker=Speaker.REMOTE, text=line[len(marker):].strip())
        return cls(speaker=Speaker.LOCAL, text=line.strip())


def parse_dialog(dialog: str, marker: str = REMOTE_MARKER) -> List[Message]:
    """
    解析对话文本

    每行一条消息，以 marker 开头的是对方消息。
    空行同样产生一条（空文本）消息，空字符串得到一条空消息。
    """
    return [Message.from_line(line, marker) for line in dialog.split("\n")]

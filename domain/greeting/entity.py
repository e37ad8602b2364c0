"""
问候领域实体
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Greeting:
    """一次问候 - 领域核心

    sequence/total 仅在一次请求产生多条问候（LotsOfReplies）时设置。
    """

    prefix: str
    recipient: str
    sequence: Optional[int] = None
    total: Optional[int] = None

    def __post_init__(self):
        if self.sequence is not None:
            if self.total is None or not (1 <= self.sequence <= self.total):
                raise ValueError(f"无效的问候序号: {self.sequence}/{self.total}")

    @property
    def text(self) -> str:
        base = f"{self.prefix}, {self.recipient}!"
        if self.sequence is None:
            return base
        return f"{base} ({self.sequence}/{self.total})"

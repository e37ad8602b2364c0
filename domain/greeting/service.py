"""
问候领域服务 - 问候规则
"""
from typing import List

from domain.common.exceptions import NameTooLongException
from .entity import Greeting


class GreetingDomainService:
    """问候领域服务"""

    def __init__(self, prefix: str, default_name: str, max_name_length: int):
        self.prefix = prefix
        self.default_name = default_name
        self.max_name_length = max_name_length

    def resolve_recipient(self, name: str) -> str:
        """业务规则：去除首尾空白，空名字使用默认名，超长名字拒绝"""
        name = (name or "").strip()
        if len(name) > self.max_name_length:
            raise NameTooLongException(len(name), self.max_name_length)
        return name or self.default_name

    def greet(self, name: str) -> Greeting:
        return Greeting(prefix=self.prefix, recipient=self.resolve_recipient(name))

    def greet_many(self, name: str, count: int) -> List[Greeting]:
        """为同一个名字生成 count 条带编号的问候（count 可以为 0）"""
        recipient = self.resolve_recipient(name)
        return [
            Greeting(prefix=self.prefix, recipient=recipient, sequence=i, total=count)
            for i in range(1, count + 1)
        ]

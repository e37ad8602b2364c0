"""
问候应用服务（application/services）- 为四种调用形态编排问候逻辑
"""
from typing import AsyncIterable, AsyncIterator, List, Optional

from application.dto import HelloRequestDTO, GreetingDTO
from core.config import HelloSettings, settings
from core.logging_config import get_logger
from domain.common.exceptions import StreamLimitExceededException
from domain.greeting import Greeting, GreetingDomainService


logger = get_logger(__name__)


def _to_dto(greeting: Greeting) -> GreetingDTO:
    return GreetingDTO(hello=greeting.text)


class GreetingApplicationService:
    """问候应用服务 - 处理应用层逻辑"""

    def __init__(self, config: Optional[HelloSettings] = None):
        self._config = config or settings.hello
        self._domain = GreetingDomainService(
            prefix=self._config.greeting_prefix,
            default_name=self._config.default_name,
            max_name_length=self._config.max_name_length,
        )

    async def say_hello(self, request: HelloRequestDTO) -> GreetingDTO:
        """单请求 → 单问候"""
        greeting = self._domain.greet(request.name)
        logger.debug(
            "greeting_created",
            recipient=greeting.recipient,
            map_entries=len(request.a_map),
            array_items=len(request.an_array),
            oneof=request.oneof_case,
        )
        return _to_dto(greeting)

    async def lots_of_replies(self, request: HelloRequestDTO) -> AsyncIterator[GreetingDTO]:
        """单请求 → 多条编号问候（条数由配置决定，可以为 0）"""
        # Validate before the first reply so a bad name fails the call up front
        greetings = self._domain.greet_many(request.name, self._config.replies_per_request)
        for greeting in greetings:
            yield _to_dto(greeting)

    async def lots_of_greetings(self, requests: AsyncIterable[HelloRequestDTO]) -> List[GreetingDTO]:
        """多请求 → 按到达顺序收集的问候列表"""
        collected: List[GreetingDTO] = []
        async for request in self._bounded(requests):
            collected.append(await self.say_hello(request))
        logger.debug("greetings_collected", count=len(collected))
        return collected

    async def bidi_hello(self, requests: AsyncIterable[HelloRequestDTO]) -> AsyncIterator[GreetingDTO]:
        """双向流：每读到一个请求立即回复一条问候"""
        async for request in self._bounded(requests):
            yield await self.say_hello(request)

    async def _bounded(self, requests: AsyncIterable[HelloRequestDTO]) -> AsyncIterator[HelloRequestDTO]:
        limit = self._config.max_stream_messages
        count = 0
        async for request in requests:
            count += 1
            if count > limit:
                raise StreamLimitExceededException(limit)
            yield request

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Optional

import grpc

from application.dto import HelloRequestDTO
from application.services.greeting_service import GreetingApplicationService
from core.logging_config import get_logger
from grpc_app.generated.pb.hello import hello_pb2, hello_pb2_grpc
from grpc_app.mappers.hello import (
    request_proto_to_dto,
    greeting_dto_to_proto,
    greetings_to_proto,
)


logger = get_logger(__name__)


async def _dtos(request_iterator: AsyncIterable[hello_pb2.SayHelloRequest]) -> AsyncIterator[HelloRequestDTO]:
    async for request in request_iterator:
        yield request_proto_to_dto(request)


class HelloWorldService(hello_pb2_grpc.HelloWorldServicer):
    """Adapter between pb.hello.HelloWorld and GreetingApplicationService."""

    def __init__(self, svc: Optional[GreetingApplicationService] = None) -> None:
        self._svc = svc or GreetingApplicationService()

    # unary-unary
    async def SayHello(self, request: hello_pb2.SayHelloRequest, context: grpc.aio.ServicerContext) -> hello_pb2.SayHelloResponse:  # type: ignore[override]
        greeting = await self._svc.say_hello(request_proto_to_dto(request))
        return greeting_dto_to_proto(greeting)

    # unary-stream
    async def LotsOfReplies(self, request: hello_pb2.SayHelloRequest, context: grpc.aio.ServicerContext) -> AsyncIterator[hello_pb2.SayHelloResponse]:  # type: ignore[override]
        async for greeting in self._svc.lots_of_replies(request_proto_to_dto(request)):
            yield greeting_dto_to_proto(greeting)

    # stream-unary
    async def LotsOfGreetings(self, request_iterator: AsyncIterable[hello_pb2.SayHelloRequest], context: grpc.aio.ServicerContext) -> hello_pb2.SayHelloResponses:  # type: ignore[override]
        greetings = await self._svc.lots_of_greetings(_dtos(request_iterator))
        return greetings_to_proto(greetings)

    # stream-stream
    async def BidiHello(self, request_iterator: AsyncIterable[hello_pb2.SayHelloRequest], context: grpc.aio.ServicerContext) -> AsyncIterator[hello_pb2.SayHelloResponse]:  # type: ignore[override]
        async for greeting in self._svc.bidi_hello(_dtos(request_iterator)):
            yield greeting_dto_to_proto(greeting)

"""
HelloWorld gRPC 客户端

在生成的 HelloWorldStub 之上提供：
- 明文 / TLS 通道
- 每次调用的超时与 x-request-id
- 对 UNAVAILABLE 的自动重试（仅限可重放的调用）
- 把 grpc.aio.AioRpcError 转换为 HelloClientError
"""
from __future__ import annotations

import logging
import uuid
from typing import AsyncIterable, AsyncIterator, Iterable, List, Optional, Union

import grpc
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from grpc_app.generated.pb.hello import hello_pb2, hello_pb2_grpc
from grpc_app.interceptors.exceptions import BIZ_CODE_META_KEY, ERROR_TYPE_META_KEY
from grpc_app.interceptors.request_id import REQUEST_ID_META_KEY


logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {grpc.StatusCode.UNAVAILABLE}

Requests = Union[Iterable[hello_pb2.SayHelloRequest], AsyncIterable[hello_pb2.SayHelloRequest]]


class HelloClientError(Exception):
    """gRPC 调用失败"""

    def __init__(
        self,
        code: grpc.StatusCode,
        details: Optional[str],
        request_id: Optional[str] = None,
        biz_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ):
        self.code = code
        self.details = details
        self.request_id = request_id
        self.biz_code = biz_code
        self.error_type = error_type
        super().__init__(f"{code.name}: {details}")

    @classmethod
    def from_rpc_error(cls, exc: grpc.aio.AioRpcError) -> "HelloClientError":
        md = {k: v for k, v in (exc.trailing_metadata() or ())}
        biz_code = md.get(BIZ_CODE_META_KEY)
        return cls(
            code=exc.code(),
            details=exc.details(),
            request_id=md.get(REQUEST_ID_META_KEY),
            biz_code=int(biz_code) if biz_code else None,
            error_type=md.get(ERROR_TYPE_META_KEY),
        )


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, grpc.aio.AioRpcError) and exc.code() in RETRYABLE_STATUS_CODES


class HelloWorldClient:
    """pb.hello.HelloWorld 异步客户端"""

    def __init__(
        self,
        target: str,
        *,
        timeout: Optional[float] = 10.0,
        max_retries: int = 2,
        retry_delay: float = 0.2,
        credentials: Optional[grpc.ChannelCredentials] = None,
        options: Optional[list] = None,
    ):
        self.target = target
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._credentials = credentials
        self._options = options
        self._channel: Optional[grpc.aio.Channel] = None
        self._stub: Optional[hello_pb2_grpc.HelloWorldStub] = None

    @property
    def stub(self) -> hello_pb2_grpc.HelloWorldStub:
        if self._stub is None:
            if self._credentials is not None:
                self._channel = grpc.aio.secure_channel(self.target, self._credentials, options=self._options)
            else:
                self._channel = grpc.aio.insecure_channel(self.target, options=self._options)
            self._stub = hello_pb2_grpc.HelloWorldStub(self._channel)
        return self._stub

    async def close(self) -> None:
        if self._channel is not None:
            await self._channel.close()
            self._channel = None
            self._stub = None

    async def __aenter__(self) -> "HelloWorldClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _metadata(self, request_id: Optional[str]) -> tuple:
        return ((REQUEST_ID_META_KEY, request_id or str(uuid.uuid4())),)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_delay, min=self.retry_delay, max=self.retry_delay * 8),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )

    async def say_hello(
        self, request: hello_pb2.SayHelloRequest, *, request_id: Optional[str] = None
    ) -> hello_pb2.SayHelloResponse:
        metadata = self._metadata(request_id)
        try:
            async for attempt in self._retrying():
                with attempt:
                    return await self.stub.SayHello(request, timeout=self.timeout, metadata=metadata)
        except grpc.aio.AioRpcError as exc:
            raise HelloClientError.from_rpc_error(exc) from exc

    async def lots_of_replies(
        self, request: hello_pb2.SayHelloRequest, *, request_id: Optional[str] = None
    ) -> AsyncIterator[hello_pb2.SayHelloResponse]:
        call = self.stub.LotsOfReplies(request, timeout=self.timeout, metadata=self._metadata(request_id))
        try:
            async for response in call:
                yield response
        except grpc.aio.AioRpcError as exc:
            raise HelloClientError.from_rpc_error(exc) from exc

    async def lots_of_greetings(
        self, requests: Requests, *, request_id: Optional[str] = None
    ) -> hello_pb2.SayHelloResponses:
        metadata = self._metadata(request_id)
        # Only a materialized sequence can be replayed on retry
        replayable = isinstance(requests, (list, tuple))
        retrying = self._retrying() if replayable else AsyncRetrying(reraise=True, stop=stop_after_attempt(1))
        try:
            async for attempt in retrying:
                with attempt:
                    stream = iter(requests) if replayable else requests
                    return await self.stub.LotsOfGreetings(stream, timeout=self.timeout, metadata=metadata)
        except grpc.aio.AioRpcError as exc:
            raise HelloClientError.from_rpc_error(exc) from exc

    async def bidi_hello(
        self, requests: Requests, *, request_id: Optional[str] = None
    ) -> AsyncIterator[hello_pb2.SayHelloResponse]:
        call = self.stub.BidiHello(requests, timeout=self.timeout, metadata=self._metadata(request_id))
        try:
            async for response in call:
                yield response
        except grpc.aio.AioRpcError as exc:
            raise HelloClientError.from_rpc_error(exc) from exc

    async def greet_all(self, names: Iterable[str]) -> List[str]:
        """Convenience helper: one LotsOfGreetings call for a list of names."""
        reply = await self.lots_of_greetings([hello_pb2.SayHelloRequest(name=n) for n in names])
        return [r.hello for r in reply.responses]

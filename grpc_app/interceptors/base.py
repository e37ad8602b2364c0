from __future__ import annotations

import inspect
from contextlib import AbstractAsyncContextManager
from typing import Awaitable, Callable

import grpc

from core.logging_config import get_logger


logger = get_logger(__name__)

# Infrastructure services (health) use the reader/writer streaming API and are left alone
PASSTHROUGH_PREFIXES = ("/grpc.health.v1.Health/",)


class CallScopeInterceptor(grpc.aio.ServerInterceptor):
    """Run `call_scope()` around every call, whatever its cardinality.

    The four handler shapes:
    unary-unary: 单请求 → 单响应
    unary-stream: 单请求 → 流式响应（服务端流）
    stream-unary: 流式请求 → 单响应（客户端流）
    stream-stream: 流式请求 → 流式响应（双向流）

    Streaming handlers must be async generators; others pass through unwrapped.
    """

    def call_scope(
        self,
        handler_call_details: grpc.HandlerCallDetails,
        context: grpc.aio.ServicerContext,
    ) -> AbstractAsyncContextManager:
        raise NotImplementedError

    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler = await continuation(handler_call_details)
        if handler is None:
            return handler
        if handler_call_details.method.startswith(PASSTHROUGH_PREFIXES):
            return handler
        return self._wrap(handler, handler_call_details)

    def _wrap(self, handler: grpc.RpcMethodHandler, details: grpc.HandlerCallDetails) -> grpc.RpcMethodHandler:
        scope = self.call_scope
        codec = dict(
            request_deserializer=handler.request_deserializer,
            response_serializer=handler.response_serializer,
        )

        if handler.unary_unary:
            async def _unary_unary(request, context: grpc.aio.ServicerContext):
                async with scope(details, context):
                    return await handler.unary_unary(request, context)

            return grpc.unary_unary_rpc_method_handler(_unary_unary, **codec)

        if handler.stream_unary:
            async def _stream_unary(request_iterator, context: grpc.aio.ServicerContext):
                async with scope(details, context):
                    return await handler.stream_unary(request_iterator, context)

            return grpc.stream_unary_rpc_method_handler(_stream_unary, **codec)

        if handler.unary_stream and inspect.isasyncgenfunction(handler.unary_stream):
            async def _unary_stream(request, context: grpc.aio.ServicerContext):
                async with scope(details, context):
                    async for response in handler.unary_stream(request, context):
                        yield response

            return grpc.unary_stream_rpc_method_handler(_unary_stream, **codec)

        if handler.stream_stream and inspect.isasyncgenfunction(handler.stream_stream):
            async def _stream_stream(request_iterator, context: grpc.aio.ServicerContext):
                async with scope(details, context):
                    async for response in handler.stream_stream(request_iterator, context):
                        yield response

            return grpc.stream_stream_rpc_method_handler(_stream_stream, **codec)

        logger.debug("grpc_handler_not_wrapped", method=details.method, interceptor=type(self).__name__)
        return handler

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import grpc

from core.logging_config import get_logger
from grpc_app.interceptors.base import CallScopeInterceptor


logger = get_logger(__name__)


class LoggingInterceptor(CallScopeInterceptor):
    """Access log around every call.

    Errors are logged by ExceptionMappingInterceptor (inner), which turns them
    into aborts before they reach this scope.
    """

    @asynccontextmanager
    async def call_scope(
        self,
        handler_call_details: grpc.HandlerCallDetails,
        context: grpc.aio.ServicerContext,
    ) -> AsyncIterator[None]:
        # request_id / method come from the structlog contextvars bound by RequestIdInterceptor
        start = time.perf_counter()
        logger.info("grpc_request", peer=context.peer())
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info("grpc_request_done", elapsed_ms=round(elapsed_ms, 2))

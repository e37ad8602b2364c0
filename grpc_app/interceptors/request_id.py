from __future__ import annotations

import uuid
import contextvars
from contextlib import asynccontextmanager
from typing import AsyncIterator

import grpc
from structlog.contextvars import bound_contextvars

from grpc_app.interceptors.base import CallScopeInterceptor


REQUEST_ID_META_KEY = "x-request-id"
_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("grpc_request_id", default=None)


def get_request_id() -> str | None:
    return _request_id_var.get()


def request_id_metadata() -> tuple:
    request_id = get_request_id()
    return ((REQUEST_ID_META_KEY, request_id),) if request_id else ()


class RequestIdInterceptor(CallScopeInterceptor):
    @asynccontextmanager
    async def call_scope(
        self,
        handler_call_details: grpc.HandlerCallDetails,
        context: grpc.aio.ServicerContext,
    ) -> AsyncIterator[None]:
        # Try to get request-id from incoming metadata
        md = dict(handler_call_details.invocation_metadata or [])
        request_id = md.get(REQUEST_ID_META_KEY) or str(uuid.uuid4())

        token = _request_id_var.set(request_id)
        # Attach as trailing metadata so the client can correlate
        context.set_trailing_metadata(request_id_metadata())
        try:
            with bound_contextvars(request_id=request_id, method=handler_call_details.method):
                yield
        finally:
            _request_id_var.reset(token)

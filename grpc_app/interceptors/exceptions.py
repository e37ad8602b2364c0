from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import grpc

from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from grpc_app.interceptors.base import CallScopeInterceptor
from grpc_app.interceptors.request_id import request_id_metadata
from shared.codes import BusinessCode


logger = get_logger(__name__)

BIZ_CODE_META_KEY = "x-biz-code"
ERROR_TYPE_META_KEY = "x-error-type"
INTERNAL_ERROR_MESSAGE = "Internal server error"


_STATUS_BY_CODE = {
    BusinessCode.PARAM_VALIDATION_ERROR: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.PARAM_ERROR: grpc.StatusCode.INVALID_ARGUMENT,

    BusinessCode.NOT_FOUND: grpc.StatusCode.NOT_FOUND,

    BusinessCode.TOO_MANY_REQUESTS: grpc.StatusCode.RESOURCE_EXHAUSTED,
    BusinessCode.RATE_LIMIT_ERROR: grpc.StatusCode.RESOURCE_EXHAUSTED,

    BusinessCode.SYSTEM_ERROR: grpc.StatusCode.INTERNAL,
}


def business_code_to_grpc_status(code: int) -> grpc.StatusCode:
    try:
        bc = BusinessCode(code)
    except ValueError:
        return grpc.StatusCode.FAILED_PRECONDITION
    return _STATUS_BY_CODE.get(bc, grpc.StatusCode.FAILED_PRECONDITION)


class ExceptionMappingInterceptor(CallScopeInterceptor):
    """Translate business exceptions raised by handlers into gRPC statuses."""

    async def _abort(
        self,
        context: grpc.aio.ServicerContext,
        status: grpc.StatusCode,
        code: int,
        error_type: str,
        message: str,
    ) -> None:
        trailing = (
            *request_id_metadata(),
            (BIZ_CODE_META_KEY, str(int(code))),
            (ERROR_TYPE_META_KEY, error_type),
        )
        await context.abort(status, message, trailing_metadata=trailing)

    @asynccontextmanager
    async def call_scope(
        self,
        handler_call_details: grpc.HandlerCallDetails,
        context: grpc.aio.ServicerContext,
    ) -> AsyncIterator[None]:
        method = handler_call_details.method
        try:
            yield
        except (grpc.aio.AbortError, grpc.RpcError):
            raise
        except BusinessException as exc:
            status = business_code_to_grpc_status(exc.code)
            # Concise business error log (no stack)
            logger.error(
                "grpc_mapped_error",
                grpc_method=method,
                code=str(int(exc.code)),
                status=str(status),
                message=exc.message,
            )
            await self._abort(context, status, exc.code, exc.error_type or "BusinessError", exc.message)
        except Exception as exc:
            # Unexpected: keep the stack in the log, hide details from the client
            logger.error("grpc_unhandled_error", grpc_method=method, error=str(exc), exc_info=True)
            await self._abort(
                context,
                grpc.StatusCode.INTERNAL,
                BusinessCode.SYSTEM_ERROR.value,
                "SystemError",
                INTERNAL_ERROR_MESSAGE,
            )

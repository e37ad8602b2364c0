"""领域层业务异常定义，供领域与应用层使用。

gRPC 传输层（grpc_app.interceptors.exceptions）负责把它们映射为 gRPC 状态码。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class NameTooLongException(DomainValidationException):
    def __init__(self, length: int, max_length: int):
        super().__init__(
            f"Name is too long ({length} > {max_length})",
            field="name",
            details={"length": length, "max_length": max_length},
        )


class StreamLimitExceededException(BusinessException):
    def __init__(self, limit: int):
        super().__init__(
            code=BusinessCode.TOO_MANY_REQUESTS,
            message=f"Too many messages on a single stream (limit {limit})",
            error_type="StreamLimitExceeded",
            details={"limit": limit},
        )

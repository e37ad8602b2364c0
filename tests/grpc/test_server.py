import pytest
from grpc_health.v1 import health_pb2

from core.config import GrpcSettings, GrpcTlsSettings, HelloSettings, Settings
from grpc_app.interceptors.exceptions import business_code_to_grpc_status
from grpc_app.server import HELLO_SERVICE_NAME, create_server, shutdown
from shared.codes import BusinessCode

import grpc


pytestmark = pytest.mark.asyncio


async def test_tls_without_cert_is_rejected():
    config = GrpcSettings(host="127.0.0.1", port=0, tls=GrpcTlsSettings(enabled=True))
    with pytest.raises(RuntimeError):
        await create_server(config)


async def test_shutdown_flips_health_to_not_serving():
    server, port, health_svc = await create_server(GrpcSettings(host="127.0.0.1", port=0))
    await server.start()
    assert port > 0
    await shutdown(server, health_svc, grace=None)
    request = health_pb2.HealthCheckRequest(service=HELLO_SERVICE_NAME)
    # Check() reads the servicer's table directly; context is unused on the success path
    response = await health_svc.Check(request, None)
    assert response.status == health_pb2.HealthCheckResponse.NOT_SERVING


def test_service_name():
    assert HELLO_SERVICE_NAME == "pb.hello.HelloWorld"


def test_business_code_mapping():
    assert business_code_to_grpc_status(BusinessCode.PARAM_VALIDATION_ERROR) == grpc.StatusCode.INVALID_ARGUMENT
    assert business_code_to_grpc_status(BusinessCode.TOO_MANY_REQUESTS) == grpc.StatusCode.RESOURCE_EXHAUSTED
    assert business_code_to_grpc_status(BusinessCode.BUSINESS_ERROR) == grpc.StatusCode.FAILED_PRECONDITION
    assert business_code_to_grpc_status(999999) == grpc.StatusCode.FAILED_PRECONDITION


def test_nested_settings_from_env(monkeypatch):
    monkeypatch.setenv("GRPC__PORT", "6000")
    monkeypatch.setenv("HELLO__REPLIES_PER_REQUEST", "5")
    monkeypatch.setenv("HELLO__GREETING_PREFIX", "Hi")
    s = Settings()
    assert s.grpc.port == 6000
    assert s.hello.replies_per_request == 5
    assert s.hello.greeting_prefix == "Hi"


def test_negative_limits_rejected():
    with pytest.raises(ValueError):
        HelloSettings(replies_per_request=-1)


def test_every_business_code_has_a_status():
    codes = {code for code in BusinessCode if code is not BusinessCode.SUCCESS}
    unmapped = {
        code for code in codes
        if business_code_to_grpc_status(code) == grpc.StatusCode.FAILED_PRECONDITION
    }
    # BUSINESS_ERROR is the generic precondition failure
    assert unmapped == {BusinessCode.BUSINESS_ERROR}
    assert "UNAUTHORIZED" not in BusinessCode.__members__
    assert "SERVICE_UNAVAILABLE" not in BusinessCode.__members__


def test_business_exception_fields():
    from domain.common.exceptions import NameTooLongException

    exc = NameTooLongException(10, 5)
    assert exc.code == BusinessCode.PARAM_VALIDATION_ERROR
    assert exc.field == "name"
    assert exc.details == {"length": 10, "max_length": 5}
    assert not hasattr(exc, "message_key")

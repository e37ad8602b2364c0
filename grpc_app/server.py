from __future__ import annotations

from typing import Optional, Sequence, Tuple
import grpc
from grpc_health.v1 import health, health_pb2_grpc, health_pb2

from core.config import GrpcSettings, settings
from core.logging_config import get_logger
from grpc_app.interceptors.request_id import RequestIdInterceptor
from grpc_app.interceptors.logging import LoggingInterceptor
from grpc_app.interceptors.exceptions import ExceptionMappingInterceptor
from grpc_app.generated.pb.hello import hello_pb2, hello_pb2_grpc
from grpc_app.services.hello_service import HelloWorldService


logger = get_logger(__name__)

HELLO_SERVICE_NAME = hello_pb2.DESCRIPTOR.services_by_name["HelloWorld"].full_name


def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _server_credentials(config: GrpcSettings) -> grpc.ServerCredentials:
    tls = config.tls
    if not (tls.cert and tls.key):
        raise RuntimeError("GRPC TLS enabled but cert/key not provided")
    root_certificates = _read(tls.ca) if tls.ca else None
    return grpc.ssl_server_credentials(
        [(_read(tls.key), _read(tls.cert))],
        root_certificates=root_certificates,
        require_client_auth=bool(root_certificates),
    )


async def create_server(
    config: Optional[GrpcSettings] = None,
    servicer: Optional[HelloWorldService] = None,
) -> Tuple[grpc.aio.Server, int, health.aio.HealthServicer]:
    """Build the server and bind its port.

    Returns (server, bound_port, health_servicer); port 0 in config binds an ephemeral port.
    """
    config = config or settings.grpc
    interceptors: Sequence[grpc.aio.ServerInterceptor] = (
        RequestIdInterceptor(),
        LoggingInterceptor(),
        ExceptionMappingInterceptor(),  # maps business exceptions
    )

    options = [
        ("grpc.max_concurrent_streams", max(1, config.max_concurrent_streams)),
    ]
    server = grpc.aio.server(interceptors=interceptors, options=options)

    # Register services
    hello_pb2_grpc.add_HelloWorldServicer_to_server(servicer or HelloWorldService(), server)

    # Health service
    health_svc = health.aio.HealthServicer()
    health_pb2_grpc.add_HealthServicer_to_server(health_svc, server)
    await health_svc.set("", health_pb2.HealthCheckResponse.SERVING)
    await health_svc.set(HELLO_SERVICE_NAME, health_pb2.HealthCheckResponse.SERVING)

    # Bind address
    address = f"{config.host}:{config.port}"
    if config.tls.enabled:
        port = server.add_secure_port(address, _server_credentials(config))
    else:
        port = server.add_insecure_port(address)

    logger.info("grpc_server_created", address=address, port=port, tls=config.tls.enabled)
    return server, port, health_svc


async def shutdown(
    server: grpc.aio.Server,
    health_svc: health.aio.HealthServicer,
    grace: Optional[float] = None,
) -> None:
    """Flip health to NOT_SERVING, then stop accepting and drain calls."""
    await health_svc.enter_graceful_shutdown()
    await server.stop(grace=grace)

"""Pytest bootstrap configuration.

gRPC stubs are build artifacts; compile them before test modules import
`grpc_app.generated`.
"""
import os

os.environ.setdefault("DEBUG", "true")

from typing import AsyncIterator, Optional

import pytest

from grpc_app.codegen import ensure_generated

ensure_generated()

import grpc  # noqa: E402

from core.config import GrpcSettings, HelloSettings  # noqa: E402
from application.services.greeting_service import GreetingApplicationService  # noqa: E402


def metadata_dict(md) -> dict:
    return {k: v for k, v in (md or ())}


@pytest.fixture
async def start_server():
    """Start in-process servers on ephemeral ports; all are stopped on teardown.

    Usage: ``target = await start_server(hello=HelloSettings(...), servicer=...)``
    """
    from grpc_app.server import create_server
    from grpc_app.services.hello_service import HelloWorldService

    servers = []

    async def _factory(hello: Optional[HelloSettings] = None, servicer=None) -> str:
        if servicer is None:
            servicer = HelloWorldService(GreetingApplicationService(hello or HelloSettings()))
        server, port, _ = await create_server(GrpcSettings(host="127.0.0.1", port=0), servicer=servicer)
        await server.start()
        servers.append(server)
        return f"127.0.0.1:{port}"

    try:
        yield _factory
    finally:
        for server in servers:
            await server.stop(grace=None)


@pytest.fixture
async def hello_server(start_server) -> AsyncIterator[str]:
    yield await start_server()


@pytest.fixture
async def stub(hello_server):
    from grpc_app.generated.pb.hello import hello_pb2_grpc

    async with grpc.aio.insecure_channel(hello_server) as channel:
        yield hello_pb2_grpc.HelloWorldStub(channel)

import asyncio

from core.config import settings
from core.logging_config import get_logger
from grpc_app.codegen import ensure_generated


logger = get_logger(__name__)


async def main() -> None:
    if not settings.grpc.enabled:
        logger.warning("grpc_disabled", message="gRPC disabled by config (GRPC__ENABLED=false)")
        return

    # Stubs are build artifacts; compile them before the server imports them
    ensure_generated()
    from grpc_app.server import create_server, shutdown

    server, port, health_svc = await create_server()
    address = f"{settings.grpc.host}:{port}"
    logger.info("grpc_starting", address=address)
    await server.start()
    logger.info("grpc_started", address=address)
    try:
        await server.wait_for_termination()
    except asyncio.CancelledError:
        logger.info("grpc_stopping")
        await shutdown(server, health_svc, grace=settings.grpc.grace_period)
        raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass

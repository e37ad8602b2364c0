"""gRPC transport layer for the application.

This package hosts:
- Protocol buffers (in `protos/`) and generated Python stubs (in `generated/`,
  produced by `codegen` / `scripts/generate_protos.py`).
- Server bootstrap, interceptors and the HelloWorld client.
- Thin service adapters that map gRPC requests to application services.
"""

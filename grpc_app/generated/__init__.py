"""Generated gRPC stubs (see grpc_app.codegen). Do not edit."""

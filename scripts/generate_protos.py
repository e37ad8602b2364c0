#!/usr/bin/env python3
"""Compile grpc_app/protos into grpc_app/generated.

Usage:
    python scripts/generate_protos.py [--force]

Requires grpcio-tools.
"""
from __future__ import annotations

import argparse
import sys

from grpc_app.codegen import GENERATED_DIR, ProtoGenerationError, ensure_generated, generate


def main() -> int:
    ap = argparse.ArgumentParser(description="Generate gRPC stubs")
    ap.add_argument("--force", action="store_true", help="Regenerate even if stubs are up to date")
    args = ap.parse_args()

    try:
        files = generate() if args.force else ensure_generated()
    except ProtoGenerationError as exc:
        print(str(exc), file=sys.stderr)
        return exc.returncode or 1

    if files is None:
        print("stubs up to date")
        return 0
    for f in sorted(GENERATED_DIR.rglob("*_pb2*.py*")):
        print(f"generated {f.relative_to(GENERATED_DIR)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

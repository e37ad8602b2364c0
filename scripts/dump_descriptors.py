#!/usr/bin/env python3
"""Write the compiled pb.hello contract for front-end tooling.

Default output is the protobuf.js namespace tree (JSON); `--service-map`
writes the method index instead and `--typescript` a `.d.ts` file.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from grpc_app.codegen import descriptor_set, ensure_generated


def main() -> int:
    ap = argparse.ArgumentParser(description="Dump proto descriptors as JSON or TypeScript definitions")
    ap.add_argument("--output", "-o", default=None, help="Output file ('-' for stdout)")
    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("--service-map", action="store_true", help="Dump the service map instead of the namespace tree")
    mode.add_argument("--typescript", action="store_true", help="Dump TypeScript definitions (.d.ts)")
    ap.add_argument("--root-url", default=None, help="Base URL for JSDoc @link to the proto sources")
    ap.add_argument("--no-router", action="store_true", help="Skip the RouteHandler declarations")
    ap.add_argument("--no-network-client", action="store_true", help="Skip the GRPCResource declarations")
    args = ap.parse_args()

    ensure_generated()
    from grpc_app.generated.pb.hello import hello_pb2
    from grpc_app.introspection import namespace_tree, service_map, typescript_definitions

    if args.typescript:
        # Source info (comments, line numbers) only survives in a fresh descriptor set
        text = typescript_definitions(
            descriptor_set().file,
            root_url=args.root_url,
            router=not args.no_router,
            network_client=not args.no_network_client,
        )
        default_output = "/tmp/descriptors.d.ts"
    else:
        files = [hello_pb2.DESCRIPTOR]
        data = service_map(files) if args.service_map else namespace_tree(files)
        text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        default_output = "/tmp/descriptors.json"

    output = args.output or default_output
    if output == "-":
        sys.stdout.write(text)
    else:
        Path(output).write_text(text)
        print(f"wrote {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

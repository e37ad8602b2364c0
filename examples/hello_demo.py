"""Call every HelloWorld RPC against a running server (python grpc_main.py).

    python examples/hello_demo.py say --name alice
    python examples/hello_demo.py bidi --name alice --name bob
"""
import argparse
import asyncio

from grpc_app.codegen import ensure_generated


async def run(mode: str, target: str, names: list[str]) -> None:
    from grpc_app.client import HelloWorldClient
    from grpc_app.generated.pb.hello import hello_pb2

    requests = [hello_pb2.SayHelloRequest(name=n) for n in names]
    async with HelloWorldClient(target) as client:
        if mode == "say":
            reply = await client.say_hello(requests[0])
            print(reply.hello)
        elif mode == "replies":
            async for reply in client.lots_of_replies(requests[0]):
                print(reply.hello)
        elif mode == "greetings":
            reply = await client.lots_of_greetings(requests)
            for item in reply.responses:
                print(item.hello)
        else:
            async for reply in client.bidi_hello(requests):
                print(reply.hello)


def main() -> None:
    ap = argparse.ArgumentParser(description="HelloWorld client demo")
    ap.add_argument("mode", choices=["say", "replies", "greetings", "bidi"], help="RPC to call")
    ap.add_argument("--target", default="127.0.0.1:50051")
    ap.add_argument("--name", action="append", default=None, help="Repeat for streaming calls")
    args = ap.parse_args()

    ensure_generated()
    asyncio.run(run(args.mode, args.target, args.name or [""]))


if __name__ == "__main__":
    main()

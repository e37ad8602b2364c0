from __future__ import annotations

from typing import Iterable

from application.dto import HelloRequestDTO, GreetingDTO
from grpc_app.generated.pb.hello import hello_pb2


def request_proto_to_dto(msg: hello_pb2.SayHelloRequest) -> HelloRequestDTO:
    case = msg.WhichOneof("a_oneof")
    return HelloRequestDTO(
        name=msg.name,
        phone=msg.phone,
        a_map=dict(msg.a_map),
        an_array=list(msg.an_array),
        maybe_string=msg.maybe_string if case == "maybe_string" else None,
        maybe_int=msg.maybe_int if case == "maybe_int" else None,
    )


def request_dto_to_proto(dto: HelloRequestDTO) -> hello_pb2.SayHelloRequest:
    msg = hello_pb2.SayHelloRequest(
        name=dto.name,
        phone=dto.phone,
        a_map=dto.a_map,
        an_array=dto.an_array,
    )
    # Assigning a oneof member clears the other one
    if dto.maybe_string is not None:
        msg.maybe_string = dto.maybe_string
    elif dto.maybe_int is not None:
        msg.maybe_int = dto.maybe_int
    return msg


def greeting_dto_to_proto(dto: GreetingDTO) -> hello_pb2.SayHelloResponse:
    return hello_pb2.SayHelloResponse(hello=dto.hello)


def greetings_to_proto(items: Iterable[GreetingDTO]) -> hello_pb2.SayHelloResponses:
    return hello_pb2.SayHelloResponses(responses=[greeting_dto_to_proto(g) for g in items])

from application.dto import GreetingDTO, HelloRequestDTO
from grpc_app.generated.pb.hello import hello_pb2
from grpc_app.mappers.hello import (
    greetings_to_proto,
    request_dto_to_proto,
    request_proto_to_dto,
)


def test_request_proto_to_dto_carries_every_field():
    msg = hello_pb2.SayHelloRequest(
        name="n", phone="p", a_map={"k": 3}, an_array=["a"], maybe_string="s"
    )
    dto = request_proto_to_dto(msg)
    assert dto == HelloRequestDTO(
        name="n", phone="p", a_map={"k": 3}, an_array=["a"], maybe_string="s"
    )
    assert dto.maybe_int is None


def test_unset_oneof_maps_to_none():
    dto = request_proto_to_dto(hello_pb2.SayHelloRequest(name="n"))
    assert dto.maybe_string is None
    assert dto.maybe_int is None


def test_dto_to_proto_sets_oneof_member():
    msg = request_dto_to_proto(HelloRequestDTO(name="n", maybe_int=0))
    assert msg.WhichOneof("a_oneof") == "maybe_int"
    assert request_proto_to_dto(msg).maybe_int == 0


def test_greetings_to_proto_preserves_order():
    msg = greetings_to_proto([GreetingDTO(hello="1"), GreetingDTO(hello="2")])
    assert [r.hello for r in msg.responses] == ["1", "2"]

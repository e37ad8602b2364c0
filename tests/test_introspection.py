from grpc_app.generated.pb.hello import hello_pb2
from grpc_app.introspection import field_option_flags, namespace_tree, service_map


def _hello_ns():
    tree = namespace_tree([hello_pb2.DESCRIPTOR])
    return tree["nested"]["pb"]["nested"]["hello"]["nested"]


def test_namespace_tree_request_message():
    req = _hello_ns()["SayHelloRequest"]
    assert req["oneofs"] == {"a_oneof": {"oneof": ["maybe_string", "maybe_int"]}}
    assert req["fields"] == {
        "name": {"type": "string", "id": 1},
        "phone": {"type": "string", "id": 2},
        "a_map": {"keyType": "string", "type": "uint32", "id": 3},
        "an_array": {"type": "string", "id": 4, "rule": "repeated"},
        "maybe_string": {"type": "string", "id": 5},
        "maybe_int": {"type": "uint32", "id": 6},
    }
    # map entry types are folded into the map field
    assert "nested" not in req


def test_namespace_tree_responses_reference_full_names():
    ns = _hello_ns()
    assert ns["SayHelloResponses"]["fields"]["responses"] == {
        "type": "pb.hello.SayHelloResponse",
        "id": 1,
        "rule": "repeated",
    }


def test_namespace_tree_service():
    methods = _hello_ns()["HelloWorld"]["methods"]
    assert methods["SayHello"] == {
        "requestType": "pb.hello.SayHelloRequest",
        "responseType": "pb.hello.SayHelloResponse",
    }
    assert methods["LotsOfReplies"]["responseStream"] is True
    assert "requestStream" not in methods["LotsOfReplies"]
    assert methods["LotsOfGreetings"]["requestStream"] is True
    assert methods["BidiHello"]["requestStream"] is True
    assert methods["BidiHello"]["responseStream"] is True


def test_service_map():
    smap = service_map([hello_pb2.DESCRIPTOR])
    assert list(smap) == ["pb.hello"]
    assert list(smap["pb.hello"]) == ["BidiHello", "LotsOfGreetings", "LotsOfReplies", "SayHello"]
    assert smap["pb.hello"]["LotsOfGreetings"] == {
        "grpc": [
            "pb.hello.SayHelloRequest",
            "pb.hello.SayHelloResponses",
            "/pb.hello.HelloWorld/LotsOfGreetings",
        ]
    }


def test_field_option_flags():
    flags = field_option_flags(hello_pb2.SayHelloRequest.DESCRIPTOR, hello_pb2.ignored)
    assert list(flags) == ["name"]
    assert flags["name"].option is True


def test_empty_input():
    assert namespace_tree([]) == {"nested": {}}
    assert service_map([]) == {}

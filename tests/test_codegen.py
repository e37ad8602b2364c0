import importlib

import pytest

from grpc_app import codegen


def test_stubs_are_current():
    assert not codegen.is_stale()
    assert (codegen.GENERATED_DIR / "pb" / "hello" / "hello_pb2.py").exists()
    assert (codegen.GENERATED_DIR / "pb" / "hello" / "__init__.py").exists()


def test_grpc_module_uses_relative_import():
    source = (codegen.GENERATED_DIR / "pb" / "hello" / "hello_pb2_grpc.py").read_text()
    assert "from . import hello_pb2 as" in source
    assert "from pb.hello import" not in source


def test_generate_into_other_directory(tmp_path):
    proto_dir = tmp_path / "protos"
    (proto_dir / "demo").mkdir(parents=True)
    (proto_dir / "demo" / "echo.proto").write_text(
        'syntax = "proto3";\npackage demo;\n'
        "message Ping { string text = 1; }\n"
        "service Echo { rpc Say(Ping) returns (Ping) {} }\n"
    )
    out_dir = tmp_path / "out"

    assert codegen.is_stale(proto_dir, out_dir)
    files = codegen.generate(proto_dir, out_dir)
    assert [f.name for f in files] == ["echo.proto"]
    assert (out_dir / "demo" / "echo_pb2.py").exists()
    assert "from . import echo_pb2 as" in (out_dir / "demo" / "echo_pb2_grpc.py").read_text()
    assert not codegen.is_stale(proto_dir, out_dir)
    assert codegen.ensure_generated(proto_dir, out_dir) is None


def test_generated_package_with_cross_file_and_root_imports(tmp_path, monkeypatch):
    proto_dir = tmp_path / "protos"
    (proto_dir / "shop" / "common").mkdir(parents=True)
    (proto_dir / "shop" / "orders").mkdir(parents=True)
    (proto_dir / "shop" / "common" / "types.proto").write_text(
        'syntax = "proto3";\npackage shop.common;\n'
        "message Item { string sku = 1; }\n"
    )
    (proto_dir / "shop" / "orders" / "orders.proto").write_text(
        'syntax = "proto3";\npackage shop.orders;\n'
        'import "shop/common/types.proto";\n'
        "message Order { shop.common.Item item = 1; }\n"
        "service Orders { rpc Place(Order) returns (shop.common.Item) {} }\n"
    )
    (proto_dir / "ping.proto").write_text(
        'syntax = "proto3";\npackage ping;\n'
        "message Ping { string text = 1; }\n"
        "service Pinger { rpc Send(Ping) returns (Ping) {} }\n"
    )
    codegen.generate(proto_dir, tmp_path / "shopgen")
    monkeypatch.syspath_prepend(str(tmp_path))

    orders_source = (tmp_path / "shopgen" / "shop" / "orders" / "orders_pb2.py").read_text()
    assert "from ...shop.common import types_pb2 as" in orders_source
    assert "from shop.common import" not in orders_source

    orders_pb2 = importlib.import_module("shopgen.shop.orders.orders_pb2")
    types_pb2 = importlib.import_module("shopgen.shop.common.types_pb2")
    order = orders_pb2.Order(item=types_pb2.Item(sku="x-1"))
    assert orders_pb2.Order.FromString(order.SerializeToString()).item.sku == "x-1"

    orders_grpc = importlib.import_module("shopgen.shop.orders.orders_pb2_grpc")
    assert hasattr(orders_grpc, "OrdersStub")

    ping_grpc = importlib.import_module("shopgen.ping_pb2_grpc")
    assert hasattr(ping_grpc, "PingerStub")
    assert "from . import ping_pb2 as" in (tmp_path / "shopgen" / "ping_pb2_grpc.py").read_text()


def test_generate_reports_protoc_failure(tmp_path):
    proto_dir = tmp_path / "protos"
    proto_dir.mkdir()
    (proto_dir / "broken.proto").write_text('syntax = "proto3";\nmessage {\n')

    with pytest.raises(codegen.ProtoGenerationError) as ei:
        codegen.generate(proto_dir, tmp_path / "out")
    assert ei.value.returncode != 0


def test_rewrite_imports_leaves_google_imports():
    text = (
        "from google.protobuf import empty_pb2 as google_dot_protobuf_dot_empty__pb2\n"
        "from pb.hello import hello_pb2 as pb_dot_hello_dot_hello__pb2\n"
    )
    assert codegen.rewrite_imports(text, ("pb", "hello")).splitlines() == [
        "from google.protobuf import empty_pb2 as google_dot_protobuf_dot_empty__pb2",
        "from . import hello_pb2 as pb_dot_hello_dot_hello__pb2",
    ]


def test_rewrite_imports_across_directories():
    text = (
        "from pb.common import types_pb2 as pb_dot_common_dot_types__pb2\n"
        "import echo_pb2 as echo__pb2\n"
        "from pb.common.types_pb2 import *\n"
        "import grpc\n"
    )
    assert codegen.rewrite_imports(text, ("pb", "shop")).splitlines() == [
        "from ...pb.common import types_pb2 as pb_dot_common_dot_types__pb2",
        "from ... import echo_pb2 as echo__pb2",
        "from ...pb.common.types_pb2 import *",
        "import grpc",
    ]


def test_rewrite_imports_at_generated_root():
    text = "import echo_pb2 as echo__pb2\nfrom pb.common import types_pb2 as t\n"
    assert codegen.rewrite_imports(text, ()).splitlines() == [
        "from . import echo_pb2 as echo__pb2",
        "from .pb.common import types_pb2 as t",
    ]


def test_rewrite_imports_is_idempotent():
    text = "from pb.common import types_pb2 as t\n"
    once = codegen.rewrite_imports(text, ("pb", "shop"))
    assert codegen.rewrite_imports(once, ("pb", "shop")) == once

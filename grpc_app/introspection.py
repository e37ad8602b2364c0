"""Export compiled proto descriptors for front-end tooling.

`namespace_tree` renders a file in the protobuf.js JSON descriptor layout
(``{"nested": {"pb": {"nested": {"hello": ...}}}}``) so front-end tooling can
load the same contract the server compiles. `service_map` indexes every RPC by
package and method name for quick request/response type lookup.
`typescript_definitions` prints a `.d.ts` file with an interface per message,
a `const enum` per enum and router / network-client declarations per RPC.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from google.protobuf.descriptor import (
    Descriptor,
    EnumDescriptor,
    FieldDescriptor,
    FileDescriptor,
    ServiceDescriptor,
)
from google.protobuf.descriptor_pb2 import (
    DescriptorProto,
    EnumDescriptorProto,
    FieldDescriptorProto,
    FileDescriptorProto,
)


# protobuf.js scalar names
_SCALAR_NAMES = {
    FieldDescriptor.TYPE_DOUBLE: "double",
    FieldDescriptor.TYPE_FLOAT: "float",
    FieldDescriptor.TYPE_INT64: "int64",
    FieldDescriptor.TYPE_UINT64: "uint64",
    FieldDescriptor.TYPE_INT32: "int32",
    FieldDescriptor.TYPE_FIXED64: "fixed64",
    FieldDescriptor.TYPE_FIXED32: "fixed32",
    FieldDescriptor.TYPE_BOOL: "bool",
    FieldDescriptor.TYPE_STRING: "string",
    FieldDescriptor.TYPE_BYTES: "bytes",
    FieldDescriptor.TYPE_UINT32: "uint32",
    FieldDescriptor.TYPE_SFIXED32: "sfixed32",
    FieldDescriptor.TYPE_SFIXED64: "sfixed64",
    FieldDescriptor.TYPE_SINT32: "sint32",
    FieldDescriptor.TYPE_SINT64: "sint64",
}


def _type_name(field: FieldDescriptor) -> str:
    if field.message_type is not None:
        return field.message_type.full_name
    if field.enum_type is not None:
        return field.enum_type.full_name
    return _SCALAR_NAMES[field.type]


def _is_map(field: FieldDescriptor) -> bool:
    msg = field.message_type
    return msg is not None and msg.GetOptions().map_entry


def _is_repeated(field: FieldDescriptor) -> bool:
    # `is_repeated` replaced `label` in recent protobuf releases
    repeated = getattr(field, "is_repeated", None)
    if repeated is not None:
        return bool(repeated)
    return field.label == FieldDescriptor.LABEL_REPEATED


def _field_json(field: FieldDescriptor) -> Dict[str, Any]:
    if _is_map(field):
        entry = field.message_type
        return {
            "keyType": _type_name(entry.fields_by_name["key"]),
            "type": _type_name(entry.fields_by_name["value"]),
            "id": field.number,
        }
    out: Dict[str, Any] = {"type": _type_name(field), "id": field.number}
    if _is_repeated(field):
        out["rule"] = "repeated"
    return out


def _enum_json(enum: EnumDescriptor) -> Dict[str, Any]:
    return {"values": {v.name: v.number for v in enum.values}}


def _message_json(msg: Descriptor) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    # Synthetic oneofs back proto3 `optional` fields and are not real groups
    oneofs = {
        o.name: {"oneof": [f.name for f in o.fields]}
        for o in msg.oneofs
        if not (len(o.fields) == 1 and o.name == f"_{o.fields[0].name}")
    }
    if oneofs:
        out["oneofs"] = oneofs
    out["fields"] = {f.name: _field_json(f) for f in msg.fields}

    nested: Dict[str, Any] = {}
    for child in msg.nested_types:
        if child.GetOptions().map_entry:
            continue
        nested[child.name] = _message_json(child)
    for enum in msg.enum_types:
        nested[enum.name] = _enum_json(enum)
    if nested:
        out["nested"] = nested
    return out


def _service_json(service: ServiceDescriptor) -> Dict[str, Any]:
    methods: Dict[str, Any] = {}
    for method in service.methods:
        entry: Dict[str, Any] = {
            "requestType": method.input_type.full_name,
            "responseType": method.output_type.full_name,
        }
        if method.client_streaming:
            entry["requestStream"] = True
        if method.server_streaming:
            entry["responseStream"] = True
        methods[method.name] = entry
    return {"methods": methods}


def _namespace_for(root: Dict[str, Any], package: str) -> Dict[str, Any]:
    node = root
    for segment in [s for s in package.split(".") if s]:
        node = node.setdefault("nested", {}).setdefault(segment, {})
    return node.setdefault("nested", {})


def namespace_tree(files: Iterable[FileDescriptor]) -> Dict[str, Any]:
    """Merge one or more files into a single protobuf.js style namespace tree."""
    root: Dict[str, Any] = {}
    for file in files:
        ns = _namespace_for(root, file.package)
        for service in file.services_by_name.values():
            ns[service.name] = _service_json(service)
        for msg in file.message_types_by_name.values():
            ns[msg.name] = _message_json(msg)
        for enum in file.enum_types_by_name.values():
            ns[enum.name] = _enum_json(enum)
    return root or {"nested": {}}


def service_map(files: Iterable[FileDescriptor]) -> Dict[str, Dict[str, Dict[str, List[str]]]]:
    """Index RPCs: ``{package: {method: {"grpc": [request, response, path]}}}``."""
    out: Dict[str, Dict[str, Dict[str, List[str]]]] = {}
    for file in files:
        for service in file.services_by_name.values():
            bucket = out.setdefault(file.package, {})
            for method in service.methods:
                bucket[method.name] = {
                    "grpc": [
                        method.input_type.full_name,
                        method.output_type.full_name,
                        f"/{service.full_name}/{method.name}",
                    ]
                }
    return {pkg: dict(sorted(methods.items())) for pkg, methods in sorted(out.items())}


def field_option_flags(msg: Descriptor, extension: FieldDescriptor) -> Dict[str, Any]:
    """Return `{field_name: extension value}` for the fields that carry `extension`."""
    flags: Dict[str, Any] = {}
    for field in msg.fields:
        options = field.GetOptions()
        if options.HasExtension(extension):
            flags[field.name] = options.Extensions[extension]
    return flags


# ---------------------------------------------------------------------------
# TypeScript definitions
# ---------------------------------------------------------------------------

ROUTER_MODULE = "@lyft/bubble-client"
NETWORK_CLIENT_MODULE = "@lyft/network-client"

OBSERVABLE_IMPORT = "import { Observable } from 'rxjs'"
ROUTER_IMPORT = f"import {{ RouteHandler }} from '{ROUTER_MODULE}'"
NETWORK_CLIENT_IMPORT = f"import {{ GRPCResource }} from '{NETWORK_CLIENT_MODULE}'"

LONG_LIKE_DECL = "type LongLike = number | BigInt | { toNumber(): number }"
ANY_DECL = "type AnyType<T = Record<string, unknown>> = T & { '@type': string }"
EMPTY_DECL = "interface Empty { _?: never }"

GRPC_ERROR = "[code: number, body: string]"

_TS_SCALARS = {
    FieldDescriptorProto.TYPE_DOUBLE: "number",
    FieldDescriptorProto.TYPE_FLOAT: "number",
    FieldDescriptorProto.TYPE_INT64: "LongLike",
    FieldDescriptorProto.TYPE_UINT64: "LongLike",
    FieldDescriptorProto.TYPE_INT32: "number",
    FieldDescriptorProto.TYPE_FIXED64: "LongLike",
    FieldDescriptorProto.TYPE_FIXED32: "number",
    FieldDescriptorProto.TYPE_BOOL: "boolean",
    FieldDescriptorProto.TYPE_STRING: "string",
    FieldDescriptorProto.TYPE_BYTES: "Buffer",
    FieldDescriptorProto.TYPE_UINT32: "number",
    FieldDescriptorProto.TYPE_SFIXED32: "number",
    FieldDescriptorProto.TYPE_SFIXED64: "LongLike",
    FieldDescriptorProto.TYPE_SINT32: "number",
    FieldDescriptorProto.TYPE_SINT64: "LongLike",
}

# Well-known wrapper types are rendered as their JSON value
_TS_WELL_KNOWN = {
    ".google.protobuf.StringValue": "string",
    ".google.protobuf.BoolValue": "boolean",
    ".google.protobuf.BytesValue": "Buffer",
    ".google.protobuf.Int32Value": "number",
    ".google.protobuf.UInt32Value": "number",
    ".google.protobuf.Int64Value": "LongLike",
    ".google.protobuf.UInt64Value": "LongLike",
    ".google.protobuf.FloatValue": "number",
    ".google.protobuf.DoubleValue": "number",
    ".google.protobuf.Timestamp": "globalThis.Date | string",
    ".google.protobuf.Duration": "string",
}

_ANY_TYPE_NAME = ".google.protobuf.Any"

# SourceCodeInfo path tags (field numbers in descriptor.proto)
_FILE_MESSAGE, _FILE_ENUM, _FILE_SERVICE = 4, 5, 6
_MSG_FIELD, _MSG_NESTED, _MSG_ENUM, _MSG_ONEOF = 2, 3, 4, 8
_SERVICE_METHOD = 2

SourcePath = Tuple[int, ...]


class _SourceInfo:
    """Comments and line numbers of one file, keyed by SourceCodeInfo path."""

    def __init__(self, file: FileDescriptorProto):
        self.file_name = file.name
        self._locations = {tuple(loc.path): loc for loc in file.source_code_info.location}

    def comment(self, path: SourcePath) -> str:
        loc = self._locations.get(path)
        if loc is None:
            return ""
        return loc.leading_comments or loc.trailing_comments

    def line(self, path: SourcePath) -> Optional[int]:
        loc = self._locations.get(path)
        if loc is None or not loc.span:
            return None
        return loc.span[0] + 1


class _TsWriter:
    def __init__(self, indent: int = 0):
        self.lines: List[str] = []
        self.indent = indent
        self.includes: Set[str] = set()

    def line(self, text: str = "") -> None:
        self.lines.append(" " * self.indent + text if text else "")

    def open(self, text: str) -> None:
        self.line(text)
        self.indent += 2

    def close(self, text: str = "}") -> None:
        self.indent -= 2
        self.line(text)

    def doc(self, lines: Sequence[str]) -> None:
        if not lines:
            return
        self.line()
        self.line("/**")
        for text in lines:
            self.line(f" *{text}")
        self.line(" */")

    def extend(self, other: "_TsWriter") -> None:
        self.lines.extend(other.lines)
        self.includes |= other.includes


def _pascal(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_") if part)


def _as_file_proto(file: Union[FileDescriptor, FileDescriptorProto]) -> FileDescriptorProto:
    if isinstance(file, FileDescriptorProto):
        return file
    proto = FileDescriptorProto()
    file.CopyToProto(proto)
    return proto


class _TypeScriptPrinter:
    def __init__(self, root_url: Optional[str], router: bool, network_client: bool):
        self.root_url = root_url.rstrip("/") if root_url else None
        self.router = router
        self.network_client = network_client

    # -- JSDoc ---------------------------------------------------------------

    def _doc(self, src: _SourceInfo, path: SourcePath, deprecated: bool, link: bool) -> List[str]:
        lines: List[str] = []
        text = src.comment(path).rstrip("\n")
        if text:
            for raw in text.split("\n"):
                # "*/" would end the JSDoc block early
                line = raw.replace("*/", "*\\/")
                if line.startswith("/"):
                    line = " " + line[1:]
                lines.append(line)
        if deprecated:
            lines.append(" @deprecated")
        if link and self.root_url:
            line_no = src.line(path)
            if line_no is not None:
                lines.append(f" @link {self.root_url}/{src.file_name}#{line_no}")
        return lines

    # -- type names ----------------------------------------------------------

    def _ts_type(self, field: FieldDescriptorProto, w: _TsWriter) -> str:
        if field.type in (FieldDescriptorProto.TYPE_MESSAGE, FieldDescriptorProto.TYPE_ENUM):
            ts = _TS_WELL_KNOWN.get(field.type_name)
            if ts is None:
                return field.type_name.lstrip(".")
        else:
            ts = _TS_SCALARS[field.type]
        if ts == "LongLike":
            w.includes.add(LONG_LIKE_DECL)
        return ts

    def _key_type(self, field: FieldDescriptorProto) -> str:
        # index signatures only accept string or number keys
        ts = _TS_SCALARS[field.type]
        return "number" if ts == "number" else "string"

    def _rpc_type(self, type_name: str, streaming: bool, w: _TsWriter) -> str:
        ts = _TS_WELL_KNOWN.get(type_name, type_name.lstrip("."))
        if ts == "LongLike":
            w.includes.add(LONG_LIKE_DECL)
        if streaming:
            w.includes.add(OBSERVABLE_IMPORT)
            return f"Observable<{ts}>"
        return ts

    # -- messages & enums ----------------------------------------------------

    def _write_message(
        self, w: _TsWriter, name: str, msg: DescriptorProto, path: SourcePath, src: _SourceInfo, scope: str
    ) -> None:
        body = _TsWriter(w.indent + 2)
        generics: List[str] = []
        map_entries = {f"{scope}.{n.name}": n for n in msg.nested_type if n.options.map_entry}
        oneof_members: Dict[int, List[str]] = defaultdict(list)

        for i, field in enumerate(msg.field):
            if field.HasField("oneof_index") and not field.proto3_optional:
                oneof_members[field.oneof_index].append(field.name)

            body.doc(self._doc(src, (*path, _MSG_FIELD, i), field.options.deprecated, link=False))
            entry = map_entries.get(field.type_name)
            if entry is not None:
                kv = {f.name: f for f in entry.field}
                key = self._key_type(kv["key"])
                value = self._ts_type(kv["value"], body)
                body.line(f"{field.name}?: {{ [key: {key}]: {value} }}")
                continue

            if field.type_name == _ANY_TYPE_NAME:
                body.includes.add(ANY_DECL)
                generic = _pascal(field.name)
                generics.append(f"{generic} = unknown")
                ts = f"AnyType<{generic}>"
            else:
                ts = self._ts_type(field, body)

            if field.label == FieldDescriptorProto.LABEL_REPEATED:
                body.line(f"{field.name}?: Array<{ts}>")
            else:
                body.line(f"{field.name}?: {ts}")

        for i, oneof in enumerate(msg.oneof_decl):
            members = oneof_members.get(i)
            if not members:
                continue  # synthetic oneof of a proto3 `optional` field
            body.doc(self._doc(src, (*path, _MSG_ONEOF, i), False, link=False))
            values = " | ".join(f"'{m}'" for m in members)
            body.line(f"{oneof.name}?: Extract<keyof {name}, {values}>")

        if generics:
            w.line(f"interface {name}<{', '.join(generics)}> {{")
        elif not msg.field:
            w.includes.add(EMPTY_DECL)
            w.line(f"interface {name} extends Empty {{")
        else:
            w.line(f"interface {name} {{")
        w.extend(body)
        w.line("}")

        children = [
            (n.name, n, (*path, _MSG_NESTED, j), f"{scope}.{n.name}")
            for j, n in enumerate(msg.nested_type)
            if not n.options.map_entry
        ]
        children += [(e.name, e, (*path, _MSG_ENUM, j), scope) for j, e in enumerate(msg.enum_type)]
        if children:
            w.open(f"namespace {name} {{")
            self._write_types(w, children, src)
            w.close()

    def _write_enum(self, w: _TsWriter, name: str, enum: EnumDescriptorProto) -> None:
        w.open(f"const enum {name} {{")
        for value in enum.value:
            w.line(f"{value.name} = {value.number},")
        w.close()

    def _write_types(self, w: _TsWriter, types: List[Tuple[str, Any, SourcePath, str]], src: _SourceInfo) -> None:
        for name, proto, path, scope in sorted(types, key=lambda t: t[0]):
            w.doc(self._doc(src, path, proto.options.deprecated, link=True))
            if isinstance(proto, DescriptorProto):
                self._write_message(w, name, proto, path, src, scope)
            else:
                self._write_enum(w, name, proto)

    def _write_namespace(self, w: _TsWriter, node: Dict[str, Any]) -> None:
        for src, types in node["types"]:
            self._write_types(w, types, src)
        for name in sorted(node["nested"]):
            w.open(f"namespace {name} {{")
            self._write_namespace(w, node["nested"][name])
            w.close()

    # -- services ------------------------------------------------------------

    def _write_rpcs(self, files: List[FileDescriptorProto], router: _TsWriter, network: _TsWriter) -> None:
        for file in files:
            src = _SourceInfo(file)
            for si, service in enumerate(file.service):
                full_name = f"{file.package}.{service.name}" if file.package else service.name
                for mi, method in enumerate(service.method):
                    grpc_path = f"/{full_name}/{method.name}"
                    doc = self._doc(
                        src,
                        (_FILE_SERVICE, si, _SERVICE_METHOD, mi),
                        service.options.deprecated or method.options.deprecated,
                        link=True,
                    )
                    if self.router:
                        req = self._rpc_type(method.input_type, method.client_streaming, router)
                        resp = self._rpc_type(method.output_type, method.server_streaming, router)
                        router.doc(doc)
                        router.open("grpc(")
                        router.line(f"path: '{grpc_path}',")
                        router.line(f"handler: RouteHandler<{req}, {resp}, {GRPC_ERROR}>")
                        router.close("): void")
                    if self.network_client:
                        req = self._rpc_type(method.input_type, method.client_streaming, network)
                        resp = self._rpc_type(method.output_type, method.server_streaming, network)
                        network.doc(doc)
                        network.open("grpc(")
                        network.line(f"path: '{grpc_path}'")
                        network.close(f"): GRPCResource<{req}, {resp}, {GRPC_ERROR}>")

    def render(self, files: Iterable[Union[FileDescriptor, FileDescriptorProto]]) -> str:
        protos = [_as_file_proto(f) for f in files]

        root: Dict[str, Any] = {"types": [], "nested": {}}
        for file in protos:
            src = _SourceInfo(file)
            node = root
            for segment in [s for s in file.package.split(".") if s]:
                node = node["nested"].setdefault(segment, {"types": [], "nested": {}})
            prefix = f".{file.package}" if file.package else ""
            types = [
                (m.name, m, (_FILE_MESSAGE, i), f"{prefix}.{m.name}") for i, m in enumerate(file.message_type)
            ]
            types += [(e.name, e, (_FILE_ENUM, i), prefix) for i, e in enumerate(file.enum_type)]
            node["types"].append((src, types))

        types_w = _TsWriter(indent=2)
        self._write_namespace(types_w, root)

        router_w = _TsWriter(indent=4)
        network_w = _TsWriter(indent=4)
        self._write_rpcs(protos, router_w, network_w)

        includes = set(types_w.includes)
        for writer, import_line in ((router_w, ROUTER_IMPORT), (network_w, NETWORK_CLIENT_IMPORT)):
            if writer.lines:
                includes.add(import_line)
                includes |= writer.includes

        out = _TsWriter()
        for import_line in (OBSERVABLE_IMPORT, ROUTER_IMPORT, NETWORK_CLIENT_IMPORT):
            if import_line in includes:
                out.line(import_line)

        for writer, module, interface in (
            (router_w, ROUTER_MODULE, "Router"),
            (network_w, NETWORK_CLIENT_MODULE, "NetworkClient"),
        ):
            if not writer.lines:
                continue
            out.open(f"declare module '{module}' {{")
            out.open(f"interface {interface} {{")
            out.lines.extend(writer.lines)
            out.close()
            out.close()

        out.open("declare global {")
        for decl in (LONG_LIKE_DECL, ANY_DECL, EMPTY_DECL):
            if decl in includes:
                out.line()
                out.line(decl)
        out.line()
        out.lines.extend(types_w.lines)
        out.close()
        return "\n".join(out.lines) + "\n"


def typescript_definitions(
    files: Iterable[Union[FileDescriptor, FileDescriptorProto]],
    *,
    root_url: Optional[str] = None,
    router: bool = True,
    network_client: bool = True,
) -> str:
    """Render a `.d.ts` file for the given proto files.

    Messages become interfaces with optional fields (`Array<T>` for repeated,
    `{ [key: K]: V }` for maps, `Extract<keyof Msg, ...>` for oneofs); enums
    become `const enum`s. Each RPC is declared on the router and on the
    network client, keyed by its gRPC path; streaming sides are `Observable<T>`.

    Comments and `deprecated` options end up in JSDoc. Comments and line links
    (`@link {root_url}/{file}#{line}`) need source info, i.e. files from
    `grpc_app.codegen.descriptor_set()`; runtime `FileDescriptor`s carry none.
    """
    return _TypeScriptPrinter(root_url, router, network_client).render(files)

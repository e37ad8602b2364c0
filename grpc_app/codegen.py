"""Compile `grpc_app/protos/**/*.proto` into `grpc_app/generated/` with grpcio-tools.

Generated modules keep the proto directory layout, so `pb/hello/hello.proto`
becomes `grpc_app.generated.pb.hello.hello_pb2` / `hello_pb2_grpc`.
"""

from __future__ import annotations

import re
import tempfile
from importlib import resources
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from google.protobuf import descriptor_pb2

from core.logging_config import get_logger


logger = get_logger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
PROTO_DIR = PACKAGE_DIR / "protos"
GENERATED_DIR = PACKAGE_DIR / "generated"

# protoc emits imports rooted at the proto include path:
#   from pb.common import types_pb2 as ...   (proto in a subdirectory)
#   import echo_pb2 as ...                   (proto at the include root)
#   from pb.common.types_pb2 import *        (public import)
# They are rewritten relative to the generated package so they resolve under it.
_STAR_IMPORT_RE = re.compile(r"^from (?!google\.)((?:[A-Za-z_]\w*\.)*)(\w+_pb2) import \*", re.MULTILINE)
_FROM_IMPORT_RE = re.compile(r"^from (?!google\.)([A-Za-z_][\w.]*) import (\w+_pb2)\b", re.MULTILINE)
_PLAIN_IMPORT_RE = re.compile(r"^import (\w+_pb2)\b", re.MULTILINE)

_GENERATED_SUFFIXES = ("_pb2.py", "_pb2_grpc.py", "_pb2.pyi")


class ProtoGenerationError(RuntimeError):
    def __init__(self, returncode: int, files: Iterable[Path]):
        self.returncode = returncode
        self.files = list(files)
        super().__init__(f"protoc failed with exit code {returncode} for {[str(f) for f in self.files]}")


def proto_files(proto_dir: Path = PROTO_DIR) -> List[Path]:
    return sorted(proto_dir.rglob("*.proto"))


def _outputs_for(proto: Path, proto_dir: Path, out_dir: Path) -> List[Path]:
    rel = proto.relative_to(proto_dir).with_suffix("")
    base = out_dir / rel.parent
    return [base / f"{rel.name}_pb2.py", base / f"{rel.name}_pb2_grpc.py"]


def is_stale(proto_dir: Path = PROTO_DIR, out_dir: Path = GENERATED_DIR) -> bool:
    """True when any generated module is missing or older than its proto."""
    for proto in proto_files(proto_dir):
        mtime = proto.stat().st_mtime
        for out in _outputs_for(proto, proto_dir, out_dir):
            if not out.exists() or out.stat().st_mtime < mtime:
                return True
    return False


def _ensure_packages(out_dir: Path) -> None:
    for directory in [out_dir, *[p for p in out_dir.rglob("*") if p.is_dir()]]:
        if directory.name == "__pycache__":
            continue
        init_file = directory / "__init__.py"
        if not init_file.exists():
            init_file.write_text('"""Generated gRPC stubs. Do not edit."""\n')


def _relative_module(package: Tuple[str, ...], target: Tuple[str, ...]) -> str:
    """Relative module path from `package` to `target`, both rooted at the generated dir."""
    if target == package:
        return "."
    return "." * (len(package) + 1) + ".".join(target)


def rewrite_imports(source: str, package: Sequence[str]) -> str:
    """Rewrite protoc's include-rooted imports in a module living in `package`."""
    own = tuple(package)

    def _star(m: "re.Match[str]") -> str:
        target = (*[p for p in m.group(1).split(".") if p], m.group(2))
        return f"from {_relative_module(own, target)} import *"

    def _from(m: "re.Match[str]") -> str:
        return f"from {_relative_module(own, tuple(m.group(1).split('.')))} import {m.group(2)}"

    def _plain(m: "re.Match[str]") -> str:
        return f"from {_relative_module(own, ())} import {m.group(1)}"

    source = _STAR_IMPORT_RE.sub(_star, source)
    source = _FROM_IMPORT_RE.sub(_from, source)
    return _PLAIN_IMPORT_RE.sub(_plain, source)


def _fix_imports(out_dir: Path) -> None:
    for path in out_dir.rglob("*"):
        if not path.name.endswith(_GENERATED_SUFFIXES):
            continue
        source = path.read_text()
        fixed = rewrite_imports(source, path.parent.relative_to(out_dir).parts)
        if fixed != source:
            path.write_text(fixed)


def _protoc_args(proto_dir: Path) -> List[str]:
    well_known = resources.files("grpc_tools") / "_proto"
    return ["grpc_tools.protoc", f"-I{proto_dir}", f"-I{well_known}"]


def generate(proto_dir: Path = PROTO_DIR, out_dir: Path = GENERATED_DIR) -> List[Path]:
    """Run protoc (python, pyi and grpc plugins) over every proto file."""
    from grpc_tools import protoc

    files = proto_files(proto_dir)
    if not files:
        return []
    out_dir.mkdir(parents=True, exist_ok=True)

    args = [
        *_protoc_args(proto_dir),
        f"--python_out={out_dir}",
        f"--pyi_out={out_dir}",
        f"--grpc_python_out={out_dir}",
        *[str(f) for f in files],
    ]
    logger.info("protoc_run", files=[str(f.relative_to(proto_dir)) for f in files], out=str(out_dir))
    returncode = protoc.main(args)
    if returncode != 0:
        raise ProtoGenerationError(returncode, files)

    _ensure_packages(out_dir)
    _fix_imports(out_dir)
    return files


def ensure_generated(proto_dir: Path = PROTO_DIR, out_dir: Path = GENERATED_DIR) -> Optional[List[Path]]:
    """Regenerate stubs only when they are missing or out of date."""
    if not is_stale(proto_dir, out_dir):
        return None
    return generate(proto_dir, out_dir)


def descriptor_set(proto_dir: Path = PROTO_DIR) -> descriptor_pb2.FileDescriptorSet:
    """Compile the protos into a FileDescriptorSet that keeps source info.

    Generated `_pb2` modules drop comments and line numbers; tooling that needs
    them (TypeScript definitions) reads this set instead.
    """
    from grpc_tools import protoc

    files = proto_files(proto_dir)
    result = descriptor_pb2.FileDescriptorSet()
    if not files:
        return result

    with tempfile.TemporaryDirectory() as tmp:
        out = Path(tmp) / "descriptors.pb"
        args = [
            *_protoc_args(proto_dir),
            f"--descriptor_set_out={out}",
            "--include_source_info",
            *[str(f) for f in files],
        ]
        returncode = protoc.main(args)
        if returncode != 0:
            raise ProtoGenerationError(returncode, files)
        result.ParseFromString(out.read_bytes())
    return result

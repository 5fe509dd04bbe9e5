"""Pytest configuration and fixtures for grpc stub generator tests."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from types import ModuleType

import pytest

# Test directory structure
TESTS_DIR = Path(__file__).parent
PROTOS_DIR = TESTS_DIR / "protos"

HELLOWORLD_PROTO = PROTOS_DIR / "helloworld.proto"
ROUTE_GUIDE_PROTO = PROTOS_DIR / "route_guide.proto"
ECHO_SERVICE_PROTO = PROTOS_DIR / "echo_service.proto"
USER_PROFILE_PROTO = PROTOS_DIR / "nested" / "deep" / "user_profile.proto"


def load_generated_module(module_path: Path) -> ModuleType:
    """Import a generated stub module from its file path.

    Generated modules are named `<name>.generated.py`, which is not importable by name.

    Args:
        module_path: Path to the generated module

    Returns:
        The imported module
    """
    module_name = f"_generated_{module_path.name.replace('.', '_')}_{abs(hash(str(module_path)))}"
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


class FakeChannel:
    """Records the multi-callables that a stub requests from its channel."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def _multi_callable(self, kind: str):
        def factory(method: str, *args, **kwargs):
            self.calls.append((kind, method))
            return (kind, method)

        return factory

    def __getattr__(self, name: str):
        if name in ("unary_unary", "unary_stream", "stream_unary", "stream_stream"):
            return self._multi_callable(name)
        raise AttributeError(name)


@pytest.fixture
def fake_channel():
    """Provide a channel that records requested multi-callables."""
    return FakeChannel()


@pytest.fixture
def temp_output_dir(tmp_path):
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def temp_proto_dir(tmp_path):
    """Create a temporary directory with test protos."""
    proto_dir = tmp_path / "protos"
    proto_dir.mkdir()

    (proto_dir / "greeter.proto").write_text("""
syntax = "proto3";

package demo.greeter_v1;

service greeter_service {
  rpc SayHello (HelloRequest) returns (HelloReply) {}
  rpc StreamHellos (HelloRequest) returns (stream HelloReply) {}
}

message HelloRequest {
  string name = 1;
}

message HelloReply {
  string message = 1;
}
""")

    (proto_dir / "plain.proto").write_text("""
syntax = "proto3";

message Empty {}

service Plain {
  rpc Call (Empty) returns (Empty) {}
}
""")

    subdir = proto_dir / "subdir"
    subdir.mkdir()
    (subdir / "nested.proto").write_text("""
syntax = "proto3";

package nested;

message Ping {}
""")

    return proto_dir

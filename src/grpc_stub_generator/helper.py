"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import keyword
import os.path
from collections.abc import Callable
from typing import TYPE_CHECKING

from grpc_stub_generator.proto_types import GENERATED_SUFFIX, PROTO_SUFFIX

if TYPE_CHECKING:
    from grpc_stub_generator.model import RpcEntry

STREAM_NAME = "stream"
RPC_NAME = "rpc"

_SEPARATORS = "_-"


def sanitize_name(name: str) -> str:
    """Sanitize a name to avoid Python keywords.

    If the name is a Python keyword, append an underscore.
    E.g. 'lambda' becomes 'lambda_', 'class' becomes 'class_'.

    Args:
        name (str): The original name.

    Returns:
        str: The sanitized name.
    """
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def camelize(segment: str) -> str:
    """Convert a single name segment to PascalCase.

    The first character and every character that follows a separator (`_` or `-`) are upper-cased,
    the separators are dropped and everything else is kept as it is.

    Examples:
        >>> camelize("foo_bar")
        'FooBar'
        >>> camelize("helloWorld")
        'HelloWorld'
        >>> camelize("HTTP_server")
        'HTTPServer'

    Args:
        segment (str): The segment to convert. Must not contain dots.

    Returns:
        str: The camelized segment.
    """
    chars: list[str] = []
    upper_next = True

    for char in segment:
        if char in _SEPARATORS:
            upper_next = True
            continue

        chars.append(char.upper() if upper_next else char)
        upper_next = False

    return "".join(chars)


def canonicalize(dotted: str) -> str:
    """Convert a dotted name into its canonical form: PascalCase per segment, joined by dots.

    E.g. `foo_bar.baz` becomes `FooBar.Baz`.

    Args:
        dotted (str): The dotted name, e.g. a package or a message type.

    Returns:
        str: The canonical name.
    """
    return ".".join(camelize(segment) for segment in str(dotted).split("."))


def resolve_top_module(namespace: str | None, package: str | None, source_base_name: str) -> str:
    """Resolve the name of the top-level module that prefixes all generated type references.

    The first non-empty candidate wins, in this order: the explicit namespace override,
    the declared package, the base name of the (first) source file.

    Args:
        namespace (str | None): The namespace override, if any.
        package (str | None): The declared package, if any.
        source_base_name (str): The source file name without its extension.

    Returns:
        str: The canonical top module name.
    """
    candidates: tuple[Callable[[], str | None], ...] = (
        lambda: namespace,
        lambda: package,
        lambda: source_base_name,
    )

    for candidate in candidates:
        value = candidate()
        if value:
            return canonicalize(value)

    return ""


def service_prefix(package: str | None) -> str:
    """The prefix that qualifies a service's wire name in its route.

    Args:
        package (str | None): The declared package.

    Returns:
        str: `<package>.` or an empty string if no package was declared.
    """
    if package:
        return f"{package}."
    return ""


def source_base_name(proto_path: str) -> str:
    """The file name of a *.proto file without directory and suffix.

    Args:
        proto_path (str): Path to the *.proto file.

    Returns:
        str: The base name, e.g. `helloworld` for `protos/helloworld.proto`.
    """
    name = os.path.basename(proto_path)
    if name.endswith(PROTO_SUFFIX):
        name = name[: -len(PROTO_SUFFIX)]
    return name


def output_file_name(proto_path: str) -> str:
    """The name of the module that is generated for a *.proto file.

    For example, `protos/helloworld.proto` becomes `helloworld.generated.py`.
    """
    return f"{source_base_name(proto_path)}{GENERATED_SUFFIX}"


def new_stream(type_name: str) -> str:
    """Wrap a type reference in the stream marker.

    Args:
        type_name (str): The qualified type name.

    Returns:
        str: E.g. `stream("Routeguide.Point")`.
    """
    return f'{STREAM_NAME}("{type_name}")'


def _qualify(type_name: str, top_module: str, streamed: bool) -> str:
    qualified = f"{top_module}.{canonicalize(type_name)}"

    if streamed:
        return new_stream(qualified)

    return f'"{qualified}"'


def compose_signature(rpc: RpcEntry, top_module: str) -> str:
    """Compose the declaration of a single RPC method.

    Request and response are qualified with the top module and wrapped in the stream
    marker independently of each other, depending on the streaming flags of the RPC.

    Args:
        rpc (RpcEntry): The RPC to compose the signature for.
        top_module (str): The resolved top module name.

    Returns:
        str: E.g. `rpc("RecordRoute", stream("Routeguide.Point"), "Routeguide.RouteSummary")`.
    """
    request = _qualify(rpc.request_type, top_module, rpc.request_streamed)
    response = _qualify(rpc.response_type, top_module, rpc.response_streamed)

    return f'{RPC_NAME}("{rpc.method_name}", {request}, {response})'


def rpc_kind(rpc: RpcEntry) -> str:
    """The name of the `grpc.Channel` multi-callable that matches the streaming flags of an RPC.

    Args:
        rpc (RpcEntry): The RPC.

    Returns:
        str: One of `unary_unary`, `unary_stream`, `stream_unary` and `stream_stream`.
    """
    request = "stream" if rpc.request_streamed else "unary"
    response = "stream" if rpc.response_streamed else "unary"
    return f"{request}_{response}"

"""Parse *.proto files into a flat sequence of declarations.

Parsing itself is done by `protoc` (bundled with `grpcio-tools`), which writes a
`FileDescriptorSet` for the input files. Each input file is then flattened into
package, message, enum and service declarations, in the order they appear.
"""

from __future__ import annotations

import logging
import os.path
import tempfile
from collections.abc import Iterator, Sequence

import grpc_tools
from google.protobuf import descriptor_pb2
from grpc_tools import protoc

from grpc_stub_generator.proto_types import (
    Declaration,
    EnumDeclaration,
    MessageDeclaration,
    PackageDeclaration,
    RawRpc,
    ServiceDeclaration,
)

logger = logging.getLogger(__name__)

DESCRIPTOR_SET_NAME = "descriptor_set.pb"


class ProtoParseError(Exception):
    """Raised when protoc rejects the *.proto input files."""

    pass


def well_known_include_path() -> str:
    """The include directory for the well-known types (google/protobuf/*.proto) shipped with grpcio-tools."""
    return os.path.join(os.path.dirname(grpc_tools.__file__), "_proto")


def collect_include_paths(proto_paths: Sequence[str], import_paths: Sequence[str] = ()) -> list[str]:
    """Collect the include directories for protoc, without duplicates and in a stable order.

    The directories of the input files come first, then the additional import paths and
    finally the directory with the well-known types.

    Args:
        proto_paths (Sequence[str]): The *.proto files to parse.
        import_paths (Sequence[str]): Additional include directories.

    Returns:
        list[str]: Absolute include directories.
    """
    include_paths: list[str] = []

    candidates = [os.path.dirname(os.path.abspath(p)) for p in proto_paths]
    candidates.extend(os.path.abspath(p) for p in import_paths)
    candidates.append(well_known_include_path())

    for candidate in candidates:
        if candidate not in include_paths:
            include_paths.append(candidate)

    return include_paths


def load_descriptor_set(
    proto_paths: Sequence[str], import_paths: Sequence[str] = ()
) -> descriptor_pb2.FileDescriptorSet:
    """Run protoc on the input files and read back the descriptor set it writes.

    Args:
        proto_paths (Sequence[str]): The *.proto files to parse.
        import_paths (Sequence[str]): Additional include directories.

    Raises:
        ProtoParseError: If protoc fails. Its diagnostics are written to stderr.

    Returns:
        descriptor_pb2.FileDescriptorSet: One file descriptor per input file, in input order.
    """
    include_args = [f"-I{p}" for p in collect_include_paths(proto_paths, import_paths)]
    input_files = [os.path.abspath(p) for p in proto_paths]

    with tempfile.TemporaryDirectory() as temp_dir:
        descriptor_set_path = os.path.join(temp_dir, DESCRIPTOR_SET_NAME)
        args = ["grpc_tools.protoc", *include_args, f"--descriptor_set_out={descriptor_set_path}", *input_files]

        logger.debug(f"Running protoc: {' '.join(args[1:])}")
        status = protoc.main(args)

        if status != 0:
            raise ProtoParseError(f"protoc failed with exit status {status} for: {', '.join(proto_paths)}")

        descriptor_set = descriptor_pb2.FileDescriptorSet()
        with open(descriptor_set_path, "rb") as f:
            descriptor_set.ParseFromString(f.read())

    return descriptor_set


def relative_type_name(type_name: str, package: str, use_package_names: bool = False) -> str:
    """Convert a fully qualified descriptor type name into the name used in the model.

    Descriptor type names are absolute, e.g. `.helloworld.HelloRequest`. Types of the
    declaring package are made relative to it, unless package names are kept.

    Args:
        type_name (str): The fully qualified type name.
        package (str): The package of the file that references the type.
        use_package_names (bool): Whether to keep the package of the type.

    Returns:
        str: E.g. `HelloRequest`, or `helloworld.HelloRequest` if package names are kept.
    """
    name = type_name.lstrip(".")

    if not use_package_names and package and name.startswith(f"{package}."):
        name = name[len(package) + 1 :]

    return name


def _message_names(messages, scope: str = "") -> Iterator[str]:
    for message in messages:
        if message.options.map_entry:
            continue

        name = f"{scope}{message.name}"
        yield name
        yield from _message_names(message.nested_type, f"{name}.")


def _raw_rpcs(service: descriptor_pb2.ServiceDescriptorProto, package: str, use_package_names: bool) -> list[RawRpc]:
    return [
        (
            index,
            method.name,
            relative_type_name(method.input_type, package, use_package_names),
            relative_type_name(method.output_type, package, use_package_names),
            method.client_streaming,
            method.server_streaming,
        )
        for index, method in enumerate(service.method)
    ]


def file_declarations(
    file_descriptor: descriptor_pb2.FileDescriptorProto, use_package_names: bool = False
) -> list[Declaration]:
    """Flatten a single file descriptor into declarations.

    Args:
        file_descriptor (descriptor_pb2.FileDescriptorProto): The parsed file.
        use_package_names (bool): Whether message type references keep their package.

    Returns:
        list[Declaration]: The package (if declared), then messages, enums and services.
    """
    declarations: list[Declaration] = []
    package = file_descriptor.package

    if package:
        declarations.append(PackageDeclaration(package))

    declarations.extend(MessageDeclaration(name) for name in _message_names(file_descriptor.message_type))
    declarations.extend(EnumDeclaration(enum.name) for enum in file_descriptor.enum_type)

    for service in file_descriptor.service:
        declarations.append(ServiceDeclaration(service.name, tuple(_raw_rpcs(service, package, use_package_names))))

    return declarations


def parse_files(
    proto_paths: Sequence[str], import_paths: Sequence[str] = (), use_package_names: bool = False
) -> list[Declaration]:
    """Parse *.proto files into a flat sequence of declarations.

    Args:
        proto_paths (Sequence[str]): The *.proto files to parse.
        import_paths (Sequence[str]): Additional include directories for imports.
        use_package_names (bool): Whether message type references keep their package.

    Raises:
        ProtoParseError: If the input cannot be parsed.

    Returns:
        list[Declaration]: The declarations of all input files, in input order.
    """
    descriptor_set = load_descriptor_set(proto_paths, import_paths)

    declarations: list[Declaration] = []
    for file_descriptor in descriptor_set.file:
        declarations.extend(file_declarations(file_descriptor, use_package_names))

    logger.info(f"Parsed {len(descriptor_set.file)} proto file(s) into {len(declarations)} declaration(s).")
    return declarations

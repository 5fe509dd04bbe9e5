"""Declarations that the parser extracts from *.proto files."""

from __future__ import annotations

from dataclasses import dataclass

PROTO_SUFFIX = ".proto"
GENERATED_SUFFIX = ".generated.py"

# (marker, method name, request type, response type, request streamed, response streamed)
RawRpc = tuple[int, str, str, str, bool, bool]


@dataclass(frozen=True)
class PackageDeclaration:
    """A `package` statement."""

    name: str


@dataclass(frozen=True)
class ServiceDeclaration:
    """A service together with its RPC list, in declaration order."""

    name: str
    rpcs: tuple[RawRpc, ...] = ()


@dataclass(frozen=True)
class MessageDeclaration:
    """A message definition. Only the (dotted) name is kept."""

    name: str


@dataclass(frozen=True)
class EnumDeclaration:
    """An enum definition."""

    name: str


Declaration = PackageDeclaration | ServiceDeclaration | MessageDeclaration | EnumDeclaration

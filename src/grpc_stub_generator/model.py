"""The intermediate model that is rendered into client stubs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from grpc_stub_generator.helper import canonicalize
from grpc_stub_generator.proto_types import Declaration, PackageDeclaration, RawRpc, ServiceDeclaration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RpcEntry:
    """A single RPC method of a service.

    Attributes:
        method_name: The declared method name, e.g. "SayHello"
        request_type: The request message type, e.g. "HelloRequest"
        response_type: The response message type, e.g. "HelloReply"
        request_streamed: Whether the client sends a stream of requests
        response_streamed: Whether the server answers with a stream of responses
    """

    method_name: str
    request_type: str
    response_type: str
    request_streamed: bool = False
    response_streamed: bool = False

    @classmethod
    def from_raw(cls, raw_rpc: RawRpc) -> RpcEntry:
        """Create an entry from a parsed RPC tuple, dropping its leading positional marker."""
        _, method_name, request_type, response_type, request_streamed, response_streamed = raw_rpc
        return cls(
            method_name=str(method_name),
            request_type=str(request_type),
            response_type=str(response_type),
            request_streamed=bool(request_streamed),
            response_streamed=bool(response_streamed),
        )


@dataclass(frozen=True)
class Service:
    """A service with its RPCs.

    The wire name is the identifier that clients and servers route calls by and is never
    transformed. The display name is its canonical form, used for generated class names.
    """

    display_name: str
    wire_name: str
    rpcs: tuple[RpcEntry, ...] = ()


@dataclass(frozen=True)
class ProtoModel:
    """Package and services of a set of *.proto files, in declaration order."""

    package: str | None = None
    services: tuple[Service, ...] = ()


def new_service(declaration: ServiceDeclaration) -> Service:
    """Build a service from its declaration.

    Args:
        declaration (ServiceDeclaration): The parsed service declaration.

    Returns:
        Service: The service, with canonical display name and untouched wire name.
    """
    wire_name = str(declaration.name)
    return Service(
        display_name=canonicalize(wire_name),
        wire_name=wire_name,
        rpcs=tuple(RpcEntry.from_raw(raw_rpc) for raw_rpc in declaration.rpcs),
    )


def build_model(declarations: Iterable[Declaration], model: ProtoModel | None = None) -> ProtoModel:
    """Fold a sequence of declarations into a model.

    The first package declaration sets the package, later ones are ignored. Every service
    declaration adds a service. All other declarations leave the model untouched.

    Args:
        declarations (Iterable[Declaration]): The parsed declarations, in order.
        model (ProtoModel | None): The model to start from. Defaults to an empty model.

    Returns:
        ProtoModel: The resulting model.
    """
    if model is None:
        model = ProtoModel()

    package = model.package
    services = list(model.services)

    for declaration in declarations:
        if isinstance(declaration, PackageDeclaration):
            if package is None:
                package = str(declaration.name)
            elif declaration.name != package:
                logger.warning(f"Ignoring package '{declaration.name}', already using package '{package}'.")

        elif isinstance(declaration, ServiceDeclaration):
            services.append(new_service(declaration))

    return ProtoModel(package=package, services=tuple(services))

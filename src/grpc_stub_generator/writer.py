"""Render client stubs for a proto model through a Jinja2 template."""

from __future__ import annotations

import logging
import os.path
from collections.abc import Sequence
from typing import Any

import jinja2

from grpc_stub_generator import helper
from grpc_stub_generator.model import ProtoModel

logger = logging.getLogger(__name__)

TEMPLATES_DIRECTORY = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
STUB_TEMPLATE_NAME = "grpc_stub.py.jinja2"


def new_environment(templates_directory: str = TEMPLATES_DIRECTORY) -> jinja2.Environment:
    """Create the Jinja2 environment for rendering stubs.

    Blocks are trimmed so that control statements do not leave blank lines behind, and undefined
    bindings fail loudly instead of rendering as empty strings.

    Args:
        templates_directory (str): The directory to load templates from.

    Returns:
        jinja2.Environment: The environment.
    """
    environment = jinja2.Environment(
        loader=jinja2.FileSystemLoader(templates_directory),
        undefined=jinja2.StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    environment.filters["pyrepr"] = repr
    environment.filters["sanitize"] = helper.sanitize_name
    return environment


class Writer:
    """A class that handles writing the client stub module, based on a proto model."""

    def __init__(
        self,
        model: ProtoModel,
        top_module: str,
        source_names: Sequence[str],
        proto_content: str = "",
        proto_paths: Sequence[str] | None = None,
        use_proto_path: bool = False,
        environment: jinja2.Environment | None = None,
    ):
        """Initialize the writer.

        Args:
            model (ProtoModel): The model to render.
            top_module (str): The resolved top module name.
            source_names (Sequence[str]): File names of the *.proto sources, for the module docstring.
            proto_content (str): The embedded source text. Unused when referencing the source files.
            proto_paths (Sequence[str] | None): Paths from the output directory to the source files.
            use_proto_path (bool): Whether to reference the source files instead of embedding their text.
            environment (jinja2.Environment | None): The template environment. Defaults to the bundled templates.
        """
        self._model = model
        self._top_module = top_module
        self._source_names = list(source_names)
        self._proto_content = proto_content
        self._proto_paths = list(proto_paths) if proto_paths else []
        self._use_proto_path = use_proto_path
        self._environment = environment or new_environment()

    @property
    def bindings(self) -> dict[str, Any]:
        """The names that are available inside the template."""
        return {
            "top_module": self._top_module,
            "proto_content": self._proto_content,
            "proto": self._model,
            "proto_paths": self._proto_paths,
            "use_proto_path": self._use_proto_path,
            "service_prefix": helper.service_prefix(self._model.package),
            "source_names": self._source_names,
            "compose_rpc": helper.compose_signature,
            "rpc_kind": helper.rpc_kind,
        }

    def dumps(self, template_name: str = STUB_TEMPLATE_NAME) -> str:
        """Generates the string output for the client stub module.

        Args:
            template_name (str): The template to render.

        Returns:
            str: The output string.
        """
        template = self._environment.get_template(template_name)
        rpc_count = sum(len(service.rpcs) for service in self._model.services)
        logger.debug(f"Rendering {len(self._model.services)} service(s) with {rpc_count} rpc(s) as '{self._top_module}'.")
        return template.render(**self.bindings)

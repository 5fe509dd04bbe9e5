"""Command-line interface for generating client stubs for *.proto files.

Notes:
    - The top level module name is derived from the package name by default, and can be
      customized with the `--namespace` option.
    - With `--use-proto-path`, the generated module references the *.proto files instead of
      embedding their text. Regenerate the stubs whenever the *.proto files change.
"""

from __future__ import annotations

import argparse
import logging
import os.path
from collections.abc import Sequence

from grpc_stub_generator.run import GeneratorConfigurationError, run

logger = logging.getLogger(__name__)


def _add_recursive_argument(parser: argparse.ArgumentParser):
    """Add a recursive argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
    """
    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        default=False,
        action="store_true",
        help="recursively search for *.proto files with a given glob expression.",
    )


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate gRPC client stubs for protobuf definition files.")

    parser.add_argument(
        "-p",
        "--paths",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions that match *.proto files; the first file names the generated module.",
    )

    parser.add_argument(
        "-e",
        "--excludes",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions to exclude from path matches.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        "--out",
        dest="output_dir",
        type=str,
        default="",
        help="directory to write the generated module to (required); created if missing.",
    )

    parser.add_argument(
        "-I",
        "--import-path",
        dest="import_paths",
        type=str,
        nargs="+",
        default=[],
        help="additional include directories for resolving imports between *.proto files.",
    )

    parser.add_argument(
        "-n",
        "--namespace",
        type=str,
        default=None,
        help="custom top level module name, e.g. Your.Service.Namespace.",
    )

    parser.add_argument(
        "--use-package-names",
        dest="use_package_names",
        default=False,
        action="store_true",
        help="qualify message types with the package names defined in the *.proto files.",
    )

    parser.add_argument(
        "--use-proto-path",
        dest="use_proto_path",
        default=False,
        action="store_true",
        help="reference the *.proto files from the generated module instead of embedding their content.",
    )

    parser.add_argument(
        "--no-format",
        dest="skip_format",
        default=False,
        action="store_true",
        help="skip ruff formatting of the generated module.",
    )

    _add_recursive_argument(parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the stub generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    logging.basicConfig(level=logging.INFO)

    root_directory = os.getcwd()
    logging.info("Working from root directory: %s", root_directory)

    parser = setup_parser()
    args = parser.parse_args(argv)

    try:
        run(args, root_directory)
    except GeneratorConfigurationError as e:
        parser.error(str(e))

    return 0

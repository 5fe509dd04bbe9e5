"""Top-level module for stub generation."""

from __future__ import annotations

import argparse
import glob
import logging
import os.path
import subprocess
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from grpc_stub_generator import helper
from grpc_stub_generator.model import build_model
from grpc_stub_generator.parser import parse_files
from grpc_stub_generator.proto_types import PROTO_SUFFIX
from grpc_stub_generator.writer import Writer

logger = logging.getLogger(__name__)


class GeneratorConfigurationError(Exception):
    """Raised when the generator is invoked without the configuration it requires."""

    pass


@dataclass
class GenerationConfig:
    """Settings of a single generator invocation.

    Attributes:
        paths: Paths or glob expressions that match *.proto files
        output_dir: The directory to write the generated module to
        excludes: Paths or glob expressions to exclude from the matches
        import_paths: Additional include directories for protoc
        recursive: Whether globs and directories are searched recursively
        namespace: Explicit top module name, overriding package and file name
        use_package_names: Whether message type references keep their declaring package
        use_proto_path: Whether to reference the *.proto files instead of embedding their text
        skip_format: Whether to skip formatting the output with ruff
    """

    paths: list[str]
    output_dir: str
    excludes: list[str] = field(default_factory=list)
    import_paths: list[str] = field(default_factory=list)
    recursive: bool = False
    namespace: str | None = None
    use_package_names: bool = False
    use_proto_path: bool = False
    skip_format: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> GenerationConfig:
        """Create the configuration from parsed command-line arguments.

        Args:
            args (argparse.Namespace): The arguments. Missing attributes fall back to their defaults.

        Raises:
            GeneratorConfigurationError: If no output directory was given.

        Returns:
            GenerationConfig: The configuration.
        """
        paths: list[str] = getattr(args, "paths", None) or []
        output_dir: str = getattr(args, "output_dir", "") or ""

        if not output_dir:
            raise GeneratorConfigurationError(
                f"expected grpc-stub-generator to receive the proto paths and an output directory, "
                f"got paths: {' '.join(paths) or '<none>'}"
            )

        return cls(
            paths=paths,
            output_dir=output_dir,
            excludes=getattr(args, "excludes", None) or [],
            import_paths=getattr(args, "import_paths", None) or [],
            recursive=getattr(args, "recursive", False),
            namespace=getattr(args, "namespace", None) or None,
            use_package_names=getattr(args, "use_package_names", False),
            use_proto_path=getattr(args, "use_proto_path", False),
            skip_format=getattr(args, "skip_format", False),
        )


def _relative_to_root(path: str, root_directory: str) -> str:
    """Express a path relative to the root directory, if it is located below it.

    Paths outside of the root directory are returned as absolute paths.
    """
    abs_path = os.path.abspath(os.path.join(root_directory, path))

    if abs_path == root_directory:
        return os.curdir

    if abs_path.startswith(os.path.join(root_directory, "")):
        return os.path.relpath(abs_path, root_directory)

    return abs_path


def _segment_count(path: str) -> int:
    return len([part for part in Path(path).parts if part != os.curdir])


def resolve_import_paths(
    proto_paths: Sequence[str], output_dir: str, root_directory: str | None = None
) -> list[str]:
    """Resolve the paths from the output directory back to each *.proto file.

    Each source path is normalized relative to the root directory, then prefixed with one `..`
    per segment of the output directory, so that it locates the source when resolved from
    inside the output directory.

    Examples:
        >>> resolve_import_paths(["protos/helloworld.proto"], "lib/generated", "/project")
        ['../../protos/helloworld.proto']
        >>> resolve_import_paths(["protos/helloworld.proto"], ".", "/project")
        ['protos/helloworld.proto']

    Args:
        proto_paths (Sequence[str]): The *.proto files.
        output_dir (str): The output directory.
        root_directory (str | None): The directory the generator is executed from. Defaults to the working directory.

    Returns:
        list[str]: One path per *.proto file.
    """
    if root_directory is None:
        root_directory = os.getcwd()
    root_directory = os.path.abspath(root_directory)

    relative_output_dir = _relative_to_root(output_dir, root_directory)

    resolved: list[str] = []
    for proto_path in proto_paths:
        relative_proto_path = _relative_to_root(proto_path, root_directory)

        if os.path.isabs(relative_output_dir):
            # The output directory is not below the root, so it cannot be walked back up by counting segments.
            resolved.append(os.path.relpath(os.path.join(root_directory, proto_path), relative_output_dir))
            continue

        level = _segment_count(relative_output_dir)
        prefix = [os.pardir] * level
        resolved.append(os.path.join(*prefix, relative_proto_path))

    return resolved


def collect_proto_paths(config: GenerationConfig, root_directory: str) -> list[str]:
    """Find all *.proto files that match the configured paths, minus the excluded ones.

    The order of the configured paths is kept, matches of a single glob expression are sorted.

    Args:
        config (GenerationConfig): The generator configuration.
        root_directory (str): The directory relative paths are resolved from.

    Returns:
        list[str]: The matching *.proto files, without duplicates.
    """
    excluded_paths: set[str] = set()
    for exclude in config.excludes:
        exclude_path = os.path.join(root_directory, exclude)
        # Handle both specific files and glob patterns
        if os.path.isfile(exclude_path):
            excluded_paths.add(os.path.abspath(exclude_path))
        else:
            excluded_paths.update(os.path.abspath(p) for p in glob.glob(exclude_path, recursive=config.recursive))

    search_paths: list[str] = []
    for path in config.paths:
        search_path = os.path.join(root_directory, path)

        if config.recursive and os.path.isdir(search_path):
            matches = []
            for root, _, files in os.walk(search_path):
                matches.extend(os.path.join(root, file) for file in files if file.endswith(PROTO_SUFFIX))
        elif os.path.isdir(search_path):
            matches = [
                os.path.join(search_path, file)
                for file in os.listdir(search_path)
                if file.endswith(PROTO_SUFFIX) and os.path.isfile(os.path.join(search_path, file))
            ]
        else:
            matches = glob.glob(search_path, recursive=config.recursive)

        search_paths.extend(sorted(p for p in matches if p.endswith(PROTO_SUFFIX)))

    valid_paths: list[str] = []
    seen: set[str] = set()
    for path in search_paths:
        abs_path = os.path.abspath(path)
        if abs_path in excluded_paths or abs_path in seen:
            continue
        seen.add(abs_path)
        valid_paths.append(path)

    return valid_paths


def format_outputs(raw_input: str) -> str:
    """Formats raw input using ruff.

    Args:
        raw_input (str): The unformatted input.

    Returns:
        str: The formatted outputs, or the raw input if ruff is not available or fails.
    """
    try:
        # Write to temporary file for ruff to process
        with tempfile.NamedTemporaryFile(mode="w", suffix=".py", delete=False, encoding="utf-8") as f:
            temp_path = Path(f.name)
            f.write(raw_input)

        try:
            # Sort imports, keep going on findings
            subprocess.run(
                ["ruff", "check", "--fix", "--select", "I", str(temp_path)],
                capture_output=True,
                check=False,
            )

            # Long route and signature lines are kept on a single line
            subprocess.run(
                ["ruff", "format", "--line-length", "320", str(temp_path)],
                capture_output=True,
                check=True,
            )

            return temp_path.read_text(encoding="utf-8")

        finally:
            temp_path.unlink(missing_ok=True)

    except subprocess.CalledProcessError as e:
        logger.error(f"Ruff formatting failed: {e}")
        logger.error(f"Stdout: {e.stdout.decode('utf-8', errors='replace')}")
        logger.error(f"Stderr: {e.stderr.decode('utf-8', errors='replace')}")
        return raw_input
    except FileNotFoundError:
        logger.error("ruff not found, writing unformatted output. Please install ruff: pip install ruff")
        return raw_input


def generate_stubs(config: GenerationConfig, proto_paths: Sequence[str], root_directory: str) -> str:
    """Entry-point for generating the client stub module from a set of *.proto files.

    Args:
        config (GenerationConfig): The generator configuration.
        proto_paths (Sequence[str]): The *.proto files. The first one names the output module.
        root_directory (str): The directory, from which the generator is executed.

    Returns:
        str: The path of the written module.
    """
    declarations = parse_files(proto_paths, config.import_paths, config.use_package_names)
    model = build_model(declarations)

    first_proto_path = proto_paths[0]
    top_module = helper.resolve_top_module(
        config.namespace, model.package, helper.source_base_name(first_proto_path)
    )
    logger.info(f"Generating stubs for {len(model.services)} service(s) as '{top_module}'.")

    if config.use_proto_path:
        proto_content = ""
        resolved_proto_paths = resolve_import_paths(proto_paths, config.output_dir, root_directory)
    else:
        with open(first_proto_path, encoding="utf8") as f:
            proto_content = f.read()
        resolved_proto_paths = []

    writer = Writer(
        model,
        top_module,
        source_names=[os.path.basename(p) for p in proto_paths],
        proto_content=proto_content,
        proto_paths=resolved_proto_paths,
        use_proto_path=config.use_proto_path,
    )
    output = writer.dumps()

    if not config.skip_format:
        output = format_outputs(output)

    output_directory = os.path.join(root_directory, config.output_dir)
    os.makedirs(output_directory, exist_ok=True)

    output_file_path = os.path.join(output_directory, helper.output_file_name(first_proto_path))
    with open(output_file_path, "w", encoding="utf8") as output_file:
        output_file.write(output)

    logger.info("Wrote stubs to '%s'.", output_file_path)
    return output_file_path


def run(args: argparse.Namespace, root_directory: str) -> str:
    """Run the stub generator on a set of paths that point to *.proto files.

    Uses `generate_stubs` on all input files together.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the stub generator.
        root_directory (str): The directory, from which the generator is executed.

    Raises:
        GeneratorConfigurationError: If the output directory is missing or no *.proto file matched.

    Returns:
        str: The path of the written module.
    """
    config = GenerationConfig.from_args(args)

    proto_paths = collect_proto_paths(config, root_directory)
    if not proto_paths:
        raise GeneratorConfigurationError(f"no *.proto files matched: {' '.join(config.paths) or '<none>'}")

    logger.info(f"Found {len(proto_paths)} proto file(s): {', '.join(proto_paths)}")

    output_file_path = generate_stubs(config, proto_paths, root_directory)

    first_proto_path = os.path.relpath(proto_paths[0], root_directory)
    print(
        "You can generate the message classes by:\n"
        f"python -m grpc_tools.protoc -I{os.path.dirname(first_proto_path) or os.curdir} "
        f"--python_out={config.output_dir} {first_proto_path}"
    )

    return output_file_path

"""High-level generator orchestration."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .codegen_ast import render_api_module
from .context import GenerationContext
from .json_types import JSONObject, JSONValue
from .loader import (
    OpenAPILoadError,
    ensure_supported_version,
    get_openapi_version,
    load_openapi_document,
)
from .naming import IdentifierAllocator, to_identifier
from .operations import OperationSynthesizer
from .options import GeneratorOptions
from .schema_compiler import SchemaCompiler
from .type_nodes import Declaration, FunctionDecl, GeneratedApi
from .writer import WriteError, format_generated_file, write_module

logger = logging.getLogger(__name__)

_SERVER_VARIABLE_RE = re.compile(r"\{([^}]+)\}")


class ApiGenerator:
    """Compile one OpenAPI document into an ordered list of declarations."""

    def __init__(
        self,
        document: JSONObject,
        options: Optional[GeneratorOptions] = None,
        *,
        is_converted: bool = False,
    ) -> None:
        self._document = document
        self._options = options or GeneratorOptions()
        self._is_converted = is_converted

    def generate(self) -> GeneratedApi:
        """Run the compiler over every path and verb of the document.

        Returns:
            GeneratedApi: Aliases in allocation order, then functions in path
            and verb order, then enums in registration order.
        """
        context = GenerationContext.start(
            self._document,
            self._options,
            is_converted=self._is_converted,
        )
        compiler = SchemaCompiler(context)
        synthesizer = OperationSynthesizer(context, compiler)

        functions: list[FunctionDecl] = []
        paths = context.document.get("paths")
        if isinstance(paths, dict):
            for path, raw_item in paths.items():
                path_item = context.resolver.resolve(raw_item)
                if not isinstance(path_item, dict):
                    continue
                for verb in path_item:
                    function = synthesizer.synthesize(str(path), str(verb), path_item)
                    if function is not None:
                        functions.append(function)

        declarations: list[Declaration] = [*context.aliases, *functions]
        declarations.extend(context.enums.declarations)
        info = context.document.get("info")
        title = info.get("title") if isinstance(info, dict) else None
        return GeneratedApi(
            declarations=tuple(declarations),
            base_url=default_base_url(context.document.get("servers")),
            servers=server_urls(context.document.get("servers")),
            title=title.strip() if isinstance(title, str) and title.strip() else None,
        )


def default_base_url(servers: JSONValue) -> str:
    """Return the URL of the first server with variables set to their defaults."""
    if not isinstance(servers, list) or not servers:
        return "/"
    return _server_url(servers[0]) or "/"


def server_urls(servers: JSONValue) -> tuple[tuple[str, str], ...]:
    """Name every server that has a URL.

    A server is named after its description, or ``server<n>`` by position.
    """
    if not isinstance(servers, list):
        return ()
    names = IdentifierAllocator()
    result: list[tuple[str, str]] = []
    for index, server in enumerate(servers):
        url = _server_url(server)
        if url is None:
            continue
        description = server.get("description")
        if isinstance(description, str) and description.strip():
            name = to_identifier(description)
        else:
            name = f"server{index + 1}"
        result.append((names.get_unique_alias(name), url))
    return tuple(result)


def _server_url(server: JSONValue) -> Optional[str]:
    if not isinstance(server, dict):
        return None
    url = server.get("url")
    if not isinstance(url, str) or not url:
        return None
    variables = server.get("variables")
    if not isinstance(variables, dict):
        return url

    def substitute(match: re.Match[str]) -> str:
        variable = variables.get(match.group(1))
        if isinstance(variable, dict) and "default" in variable:
            return str(variable["default"])
        return match.group(0)

    return _SERVER_VARIABLE_RE.sub(substitute, url)


@dataclass(frozen=True)
class GenerationRun:
    """Outcome of generating one client module file."""

    output_path: Path
    function_count: int
    model_count: int
    warnings: tuple[str, ...]


def run_generation(
    *,
    input_path: Path,
    output_path: Path,
    options: Optional[GeneratorOptions] = None,
    is_converted: bool = False,
    format_output: bool = False,
    force: bool = False,
) -> GenerationRun:
    """Generate a typed client module from an OpenAPI document.

    Args:
        input_path (Path): Path to the input OpenAPI document.
        output_path (Path): Python file the client module is written to.
        options (Optional[GeneratorOptions]): Compiler options.
        is_converted (bool): Whether the document was converted from Swagger 2.
        format_output (bool): Whether to run ruff over the written module.
        force (bool): Whether an existing output file may be overwritten.

    Returns:
        GenerationRun: Summary of the written module and any warnings.
    """
    options = options or GeneratorOptions()
    document = load_openapi_document(input_path)
    ensure_supported_version(get_openapi_version(document))
    logger.info("Generating client for %s", input_path)

    api = ApiGenerator(document, options, is_converted=is_converted).generate()
    rendered = render_api_module(api, runtime_package=options.runtime_package)
    write_module(output_path, rendered.source, overwrite=force)
    if format_output:
        format_generated_file(output_path)

    functions = api.functions()
    logger.info(
        "Wrote %d functions and %d declarations to %s",
        len(functions),
        len(api.declarations) - len(functions),
        output_path,
    )
    return GenerationRun(
        output_path=output_path,
        function_count=len(functions),
        model_count=len(api.declarations) - len(functions),
        warnings=(*api.warnings, *rendered.warnings),
    )


__all__ = [
    "ApiGenerator",
    "GenerationRun",
    "OpenAPILoadError",
    "WriteError",
    "default_base_url",
    "run_generation",
    "server_urls",
]

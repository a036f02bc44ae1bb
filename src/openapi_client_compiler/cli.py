"""Command line interface for OpenAPI client generation."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from pydantic import ValidationError

from .errors import GenerationError
from .generator import OpenAPILoadError, WriteError, run_generation
from .options import DEFAULT_RUNTIME_PACKAGE, GeneratorOptions


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="openapi-client-compiler",
        description="Generate a typed Python client module from an OpenAPI v3 document",
    )
    parser.add_argument("--input", required=True, help="Path to an OpenAPI YAML or JSON file")
    parser.add_argument("--output", required=True, help="Python file to write the client to")
    parser.add_argument(
        "--exclude",
        nargs="+",
        metavar="TAG",
        help="Skip operations carrying any of these tags",
    )
    parser.add_argument(
        "--include",
        nargs="+",
        metavar="TAG",
        help="Only generate operations carrying one of these tags",
    )
    parser.add_argument(
        "--use-enum-type",
        action="store_true",
        help="Emit Enum classes for named enums instead of literal unions",
    )
    parser.add_argument(
        "--merge-read-write-only",
        action="store_true",
        help="Do not split models into read and write variants",
    )
    parser.add_argument(
        "--union-undefined",
        action="store_true",
        help="Type optional properties as a union with undefined",
    )
    parser.add_argument(
        "--optimistic",
        action="store_true",
        help="Wrap every call in runtime.ok to return only successful payloads",
    )
    parser.add_argument(
        "--converted",
        action="store_true",
        help="Treat the document as converted from Swagger 2 (merges filter[x] parameters)",
    )
    parser.add_argument(
        "--runtime-package",
        default=DEFAULT_RUNTIME_PACKAGE,
        help="Package providing the runtime and qs modules",
    )
    parser.add_argument("--format", action="store_true", help="Format the output with ruff")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing output file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        options = GeneratorOptions(
            exclude=tuple(args.exclude) if args.exclude else None,
            include=tuple(args.include) if args.include else None,
            use_enum_type=bool(args.use_enum_type),
            merge_read_write_only=bool(args.merge_read_write_only),
            union_undefined=bool(args.union_undefined),
            optimistic=bool(args.optimistic),
            runtime_package=args.runtime_package,
        )
    except ValidationError as exc:
        parser.error(str(exc))
        return 2

    try:
        run = run_generation(
            input_path=Path(args.input),
            output_path=Path(args.output),
            options=options,
            is_converted=bool(args.converted),
            format_output=bool(args.format),
            force=bool(args.force),
        )
    except (OpenAPILoadError, WriteError, GenerationError) as exc:
        parser.error(str(exc))
        return 2

    for warning in run.warnings:
        print(f"Warning: {warning}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""OpenAPI to typed Python client compiler package."""

from __future__ import annotations

from .cli import main
from .codegen_ast import render_api_module
from .generator import ApiGenerator, GenerationRun, run_generation
from .options import GeneratorOptions

__all__ = [
    "ApiGenerator",
    "GenerationRun",
    "GeneratorOptions",
    "main",
    "render_api_module",
    "run_generation",
]

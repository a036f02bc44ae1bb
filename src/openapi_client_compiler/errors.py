"""Errors raised while compiling an OpenAPI document into a client module."""

from __future__ import annotations


class GenerationError(RuntimeError):
    """Base class for errors that abort a generation run."""


class UnsupportedReferenceError(GenerationError):
    """Raised for ``$ref`` values that point outside the current document."""


class ReferenceNotFoundError(GenerationError):
    """Raised when a local ``$ref`` does not resolve to any node."""


class DiscriminatorConfigError(GenerationError):
    """Raised for discriminators that cannot produce a tagged union."""


class UnexpectedEnumValueError(GenerationError):
    """Raised for enum or const values that have no literal type."""

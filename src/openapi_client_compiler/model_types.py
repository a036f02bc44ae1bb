"""Rendering datatypes for generated pydantic model classes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class FieldDef:
    """Represents a single pydantic model field."""

    name: str
    source_name: str
    annotation: str
    required: bool


@dataclass
class ModelDef:
    """Represents a generated pydantic model class.

    A model with a ``root_annotation`` renders as a ``RootModel``; all other
    models derive from ``bases`` or ``BaseModel``.
    """

    name: str
    bases: tuple[str, ...] = ()
    fields: list[FieldDef] = field(default_factory=list)
    root_annotation: Optional[str] = None
    extra_annotation: Optional[str] = None
    allow_extra: bool = False

    @property
    def is_root(self) -> bool:
        return self.root_annotation is not None


@dataclass(frozen=True)
class RenderedModule:
    """Python source of a generated client module."""

    source: str
    warnings: tuple[str, ...]

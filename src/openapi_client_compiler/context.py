"""Mutable state of one generation run."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field

from .discriminator import preprocess_components
from .enums import EnumRegistry
from .json_types import JSONObject, MutableJSONObject
from .naming import RESERVED_MODULE_NAMES, IdentifierAllocator
from .only_mode import OnlyMode, OnlyModeFlags
from .options import GeneratorOptions
from .resolver import Resolver
from .type_nodes import TypeAliasDecl, TypeRef


@dataclass
class GenerationContext:
    """Tables shared by every compiler call of a single run.

    A context is created at the start of a run and discarded at its end, so
    no names, aliases or enums leak from one document into the next.
    """

    document: MutableJSONObject
    options: GeneratorOptions
    is_converted: bool = False
    resolver: Resolver = field(init=False)
    discriminating_refs: set[str] = field(init=False)
    refs: dict[tuple[str, OnlyMode], TypeRef] = field(default_factory=dict)
    only_mode_cache: dict[str, OnlyModeFlags] = field(default_factory=dict)
    allocator: IdentifierAllocator = field(
        default_factory=lambda: IdentifierAllocator(RESERVED_MODULE_NAMES)
    )
    enums: EnumRegistry = field(default_factory=EnumRegistry)
    aliases: list[TypeAliasDecl] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.resolver = Resolver(self.document)
        self.discriminating_refs = preprocess_components(self.document)

    @classmethod
    def start(
        cls,
        document: JSONObject,
        options: GeneratorOptions,
        *,
        is_converted: bool = False,
    ) -> GenerationContext:
        """Create a fresh context over a private copy of ``document``."""
        return cls(document=deepcopy(dict(document)), options=options, is_converted=is_converted)

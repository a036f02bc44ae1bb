"""Enum compilation: inline literal unions and deduplicated named enums."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .errors import UnexpectedEnumValueError
from .json_types import SchemaNode
from .naming import IdentifierAllocator, enum_member_name, pascal_case, upper_first
from .type_nodes import NULL, EnumDecl, EnumMember, LiteralType, TypeNode, TypeRef, UnionType

logger = logging.getLogger(__name__)

_CUSTOM_NAME_KEYS: tuple[str, ...] = ("x-enumNames", "x-enum-varnames")


def literal_type(value: Any) -> TypeNode:
    """Return the literal type of a single enum or const value."""
    if value is None:
        return NULL
    if isinstance(value, (str, bool, int, float)):
        return LiteralType(value)
    raise UnexpectedEnumValueError(
        f"Unexpected {value!r} of type {type(value).__name__} in enum"
    )


def literal_type_from_values(values: list[Any]) -> TypeNode:
    """Return a literal type, or a union of literal types, for ``values``."""
    types = tuple(literal_type(value) for value in values)
    if len(types) == 1:
        return types[0]
    return UnionType(types)


def enum_signature(values: list[Any]) -> str:
    """Return the ordered value signature used to compare enum schemas."""
    return "_".join(str(value) for value in values)


def proposed_enum_name(schema: SchemaNode, prop_name: Optional[str]) -> Optional[str]:
    """Return the name an enum schema asks for, or None when it is anonymous."""
    title = schema.get("title")
    if isinstance(title, str) and title.strip():
        return pascal_case(title)
    if prop_name:
        return pascal_case(upper_first(prop_name))
    return None


@dataclass(frozen=True)
class EnumEntry:
    signature: str
    name: str


class EnumRegistry:
    """Emit one ``EnumDecl`` per distinct (proposed name, value signature)."""

    def __init__(self) -> None:
        self._entries: dict[str, list[EnumEntry]] = {}
        self.declarations: list[EnumDecl] = []

    def get_true_enum(
        self,
        schema: SchemaNode,
        prop_name: Optional[str],
        allocator: IdentifierAllocator,
    ) -> TypeRef:
        """Return a reference to the named enum for ``schema``.

        A schema whose proposed name and value signature match an earlier one
        reuses that declaration; otherwise a fresh, unique name is allocated.
        """
        proposed = proposed_enum_name(schema, prop_name) or "Enum"
        values = list(schema.get("enum") or [])
        for value in values:
            literal_type(value)
        signature = enum_signature(values)

        for entry in self._entries.get(proposed, []):
            if entry.signature == signature:
                logger.debug("Reusing enum %s for values %s", entry.name, signature)
                return TypeRef(entry.name)

        name = allocator.get_unique_alias(proposed)
        self.declarations.append(EnumDecl(name=name, members=_enum_members(schema, values)))
        self._entries.setdefault(proposed, []).append(EnumEntry(signature=signature, name=name))
        return TypeRef(name)


def _enum_members(schema: SchemaNode, values: list[Any]) -> tuple[EnumMember, ...]:
    custom_names = _custom_names(schema, len(values))
    members: list[EnumMember] = []
    used: set[str] = set()
    for index, value in enumerate(values):
        if value is None:
            continue
        if custom_names is not None:
            member_name = enum_member_name(custom_names[index])
        else:
            member_name = enum_member_name(value)
        candidate = member_name
        suffix = 2
        while candidate in used:
            candidate = f"{member_name}_{suffix}"
            suffix += 1
        used.add(candidate)
        members.append(EnumMember(name=candidate, value=value))
    return tuple(members)


def _custom_names(schema: SchemaNode, count: int) -> Optional[list[str]]:
    for key in _CUSTOM_NAME_KEYS:
        names = schema.get(key)
        if (
            isinstance(names, list)
            and len(names) == count
            and all(isinstance(name, str) and name for name in names)
        ):
            return names
    return None

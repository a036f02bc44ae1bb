"""Detect readOnly/writeOnly properties in a schema's closure."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .resolver import Resolver, is_reference


class OnlyMode(str, Enum):
    """Which property set of a schema is being compiled."""

    NONE = "none"
    READ_ONLY = "readOnly"
    WRITE_ONLY = "writeOnly"


@dataclass(frozen=True)
class OnlyModeFlags:
    read_only: bool = False
    write_only: bool = False

    @property
    def any(self) -> bool:
        return self.read_only or self.write_only


NEITHER = OnlyModeFlags()


def check_only_mode(
    schema: Any,
    resolver: Resolver,
    *,
    resolve_refs: bool = True,
    cache: Optional[dict[str, OnlyModeFlags]] = None,
) -> OnlyModeFlags:
    """Report whether ``schema`` contains readOnly and writeOnly properties.

    Args:
        schema (Any): Schema or reference node to scan.
        resolver (Resolver): Resolver used to follow references.
        resolve_refs (bool): Follow references; when False they count as neither.
        cache (Optional[dict[str, OnlyModeFlags]]): Per-run results keyed by pointer.

    Returns:
        OnlyModeFlags: Both flags, found anywhere in the closure.
    """
    flags, _ = _check(schema, resolver, resolve_refs, cache, set())
    return flags


def _check(
    schema: Any,
    resolver: Resolver,
    resolve_refs: bool,
    cache: Optional[dict[str, OnlyModeFlags]],
    history: set[str],
) -> tuple[OnlyModeFlags, frozenset[str]]:
    """Scan one node; also return the references cut short because they are still open."""
    if is_reference(schema):
        ref = schema["$ref"]
        if not resolve_refs:
            return NEITHER, frozenset()
        if ref in history:
            return NEITHER, frozenset({ref})
        if cache is not None and ref in cache:
            return cache[ref], frozenset()
        history.add(ref)
        result, pending = _check(resolver.resolve(schema), resolver, resolve_refs, cache, history)
        history.discard(ref)
        pending = pending - {ref}
        # A scan that stopped at an open ancestor may be missing that ancestor's flags.
        if cache is not None and (not pending or (result.read_only and result.write_only)):
            cache[ref] = result
        return result, pending

    if not isinstance(schema, dict):
        return NEITHER, frozenset()

    read_only = schema.get("readOnly") is True
    write_only = schema.get("writeOnly") is True

    children: list[Any] = []
    if schema.get("items"):
        children.append(schema["items"])
    else:
        properties = schema.get("properties")
        if isinstance(properties, dict):
            children.extend(properties.values())
        for key in ("allOf", "anyOf", "oneOf"):
            members = schema.get(key)
            if isinstance(members, list):
                children.extend(members)

    pending: frozenset[str] = frozenset()
    for child in children:
        if read_only and write_only:
            break
        result, child_pending = _check(child, resolver, resolve_refs, cache, history)
        read_only = read_only or result.read_only
        write_only = write_only or result.write_only
        pending |= child_pending

    return OnlyModeFlags(read_only=read_only, write_only=write_only), pending


def includes_property(prop_schema: Any, only_mode: OnlyMode, *, merge: bool) -> bool:
    """Return whether a property belongs to the ``only_mode`` variant of its object."""
    if merge or not isinstance(prop_schema, dict):
        return True
    read_only = prop_schema.get("readOnly") is True
    write_only = prop_schema.get("writeOnly") is True
    if only_mode is OnlyMode.READ_ONLY:
        return read_only or not write_only
    if only_mode is OnlyMode.WRITE_ONLY:
        return write_only or not read_only
    return not read_only and not write_only

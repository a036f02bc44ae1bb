"""JSON-compatible typing aliases shared across the project."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeAlias, Union

JSONPrimitive: TypeAlias = Union[str, int, float, bool, None]
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | Mapping[str, "JSONValue"]
JSONObject: TypeAlias = Mapping[str, JSONValue]
MutableJSONObject: TypeAlias = dict[str, JSONValue]

# Schema, parameter and response nodes are plain mappings; a node holding a
# ``$ref`` key is a reference object.
SchemaNode: TypeAlias = MutableJSONObject
ReferenceNode: TypeAlias = dict[str, str]

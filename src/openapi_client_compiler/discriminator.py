"""Normalize implicit discriminator mappings on component schemas."""

from __future__ import annotations

import logging

from .json_types import MutableJSONObject
from .resolver import escape_pointer_token, is_reference

logger = logging.getLogger(__name__)

COMPONENT_REF_PATH_KEY = "x-component-ref-path"
COMPONENT_SCHEMAS_PREFIX = "#/components/schemas/"


def component_schemas(document: MutableJSONObject) -> dict[str, MutableJSONObject]:
    """Return the ``components.schemas`` mapping, or an empty mapping."""
    components = document.get("components")
    if not isinstance(components, dict):
        return {}
    schemas = components.get("schemas")
    if not isinstance(schemas, dict):
        return {}
    return schemas


def preprocess_components(document: MutableJSONObject) -> set[str]:
    """Tag component schemas and materialize implicit discriminator mappings.

    The document is mutated in place: every component schema gains an
    ``x-component-ref-path`` entry, and discriminators of base schemas gain
    one explicit ``mapping`` entry per component that extends them via
    ``allOf``.

    Args:
        document (MutableJSONObject): Document to preprocess. Callers pass a copy.

    Returns:
        set[str]: Pointers of the discriminating base schemas.
    """
    schemas = component_schemas(document)
    discriminating: set[str] = set()

    for name, schema in schemas.items():
        if not isinstance(schema, dict) or is_reference(schema):
            continue
        pointer = COMPONENT_SCHEMAS_PREFIX + escape_pointer_token(name)
        schema[COMPONENT_REF_PATH_KEY] = pointer
        if isinstance(schema.get("discriminator"), dict) and not (
            "oneOf" in schema or "anyOf" in schema
        ):
            discriminating.add(pointer)

    for name, schema in schemas.items():
        if not isinstance(schema, dict) or not isinstance(schema.get("allOf"), list):
            continue
        pointer = COMPONENT_SCHEMAS_PREFIX + escape_pointer_token(name)
        for child in schema["allOf"]:
            if not is_reference(child) or child["$ref"] not in discriminating:
                continue
            base_schema = schemas.get(_component_name(child["$ref"]))
            if not isinstance(base_schema, dict):
                continue
            discriminator = base_schema["discriminator"]
            mapping = discriminator.setdefault("mapping", {})
            if pointer in mapping.values():
                continue
            mapping[name] = pointer
            logger.debug("Mapped discriminator value %r to %s", name, pointer)

    return discriminating


def _component_name(pointer: str) -> str:
    token = pointer[len(COMPONENT_SCHEMAS_PREFIX) :]
    return token.replace("~1", "/").replace("~0", "~")

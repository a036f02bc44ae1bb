"""Compile OpenAPI schema nodes into abstract type expressions."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from .context import GenerationContext
from .discriminator import COMPONENT_REF_PATH_KEY
from .enums import literal_type_from_values
from .errors import DiscriminatorConfigError
from .naming import pascal_case
from .only_mode import NEITHER, OnlyMode, check_only_mode, includes_property
from .options import GeneratorOptions
from .resolver import Resolver, is_reference, ref_basename, ref_name
from .type_nodes import (
    ANY,
    BINARY,
    BOOLEAN,
    NULL,
    NUMBER,
    STRING,
    UNDEFINED,
    ArrayType,
    IntersectionType,
    LiteralType,
    ObjectType,
    PropertySignature,
    TupleType,
    TypeAliasDecl,
    TypeNode,
    TypeRef,
    UnionType,
)

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES: dict[str, TypeNode] = {
    "string": STRING,
    "number": NUMBER,
    "integer": NUMBER,
    "boolean": BOOLEAN,
    "null": NULL,
}
_MIME_TYPE_RE = re.compile(r"^[^/]+/[^/]+$")
# "~" followed by anything but 0/1 never occurs in an escaped pointer.
_DISCRIMINATOR_BASE_SUFFIX = "~base"


def is_nullable(schema: Any) -> bool:
    """Return whether an inline schema is marked ``nullable``."""
    return isinstance(schema, dict) and not is_reference(schema) and schema.get("nullable") is True


def is_mime_type(value: Any) -> bool:
    return isinstance(value, str) and _MIME_TYPE_RE.match(value) is not None


def _includes_null(node: TypeNode) -> bool:
    return node == NULL or (isinstance(node, UnionType) and NULL in node.members)


class SchemaCompiler:
    """Turn schema nodes into type expressions, emitting aliases on the way.

    Every compiled reference is registered in the context's alias table
    before its body is compiled, so cyclic schemas terminate and every
    (reference, only-mode) pair is emitted at most once.
    """

    def __init__(self, context: GenerationContext) -> None:
        self._context = context

    @property
    def resolver(self) -> Resolver:
        return self._context.resolver

    @property
    def options(self) -> GeneratorOptions:
        return self._context.options

    def get_type_from_schema(
        self,
        schema: Any,
        name: Optional[str] = None,
        only_mode: OnlyMode = OnlyMode.NONE,
    ) -> TypeNode:
        """Compile ``schema``, adding ``null`` to the result for nullable schemas."""
        base_type = self.get_base_type_from_schema(schema, name, only_mode)
        if is_nullable(schema) and not _includes_null(base_type):
            return UnionType((base_type, NULL))
        return base_type

    def get_base_type_from_schema(
        self,
        schema: Any,
        name: Optional[str] = None,
        only_mode: OnlyMode = OnlyMode.NONE,
    ) -> TypeNode:
        """Dispatch on the shape of ``schema``; the first matching shape wins."""
        if not isinstance(schema, dict):
            return ANY
        if is_reference(schema):
            return self.get_ref_alias(schema["$ref"], only_mode)

        if isinstance(schema.get("oneOf"), list):
            return self.get_union_type(schema["oneOf"], schema.get("discriminator"), only_mode)
        if isinstance(schema.get("anyOf"), list):
            return UnionType(
                tuple(self.get_type_from_schema(item, None, only_mode) for item in schema["anyOf"])
            )
        if isinstance(schema.get("allOf"), list):
            return self._get_intersection_type(schema, only_mode)
        if isinstance(schema.get("prefixItems"), list):
            return TupleType(
                tuple(
                    self.get_type_from_schema(item, None, only_mode)
                    for item in schema["prefixItems"]
                )
            )
        if "items" in schema:
            return ArrayType(self.get_type_from_schema(schema["items"], None, only_mode))
        if _has_object_members(schema):
            return self.get_type_from_properties(
                schema.get("properties") or {},
                schema.get("required"),
                schema.get("additionalProperties"),
                only_mode,
            )
        if isinstance(schema.get("enum"), list) and schema["enum"]:
            if self.is_true_enum(schema, name):
                enum_ref = self._context.enums.get_true_enum(schema, name, self._context.allocator)
                # null has no Enum member
                if None in schema["enum"]:
                    return UnionType((enum_ref, NULL))
                return enum_ref
            return literal_type_from_values(schema["enum"])
        if schema.get("format") == "binary":
            return BINARY
        if "const" in schema:
            return literal_type_from_values([schema["const"]])

        schema_type = schema.get("type")
        if isinstance(schema_type, str) and schema_type in _PRIMITIVE_TYPES:
            return _PRIMITIVE_TYPES[schema_type]
        if isinstance(schema_type, list):
            members = tuple(
                _PRIMITIVE_TYPES[item] for item in schema_type if item in _PRIMITIVE_TYPES
            )
            if members:
                return members[0] if len(members) == 1 else UnionType(members)
        return ANY

    def is_true_enum(self, schema: Any, name: Optional[str]) -> bool:
        """Return whether ``schema`` compiles to a named ``Enum`` declaration."""
        if not self.options.use_enum_type or not isinstance(schema, dict):
            return False
        values = schema.get("enum")
        if not isinstance(values, list) or not values:
            return False
        title = schema.get("title")
        return bool(name) or (isinstance(title, str) and bool(title.strip()))

    def get_ref_alias(
        self,
        ref: str,
        only_mode: OnlyMode = OnlyMode.NONE,
        *,
        ignore_discriminator: bool = False,
    ) -> TypeNode:
        """Return the alias of ``ref`` under ``only_mode``, compiling it on first use.

        Args:
            ref (str): Local JSON pointer of the referenced schema.
            only_mode (OnlyMode): Property set requested by the caller.
            ignore_discriminator (bool): Reference the body of a discriminating
                base schema (``<Name>Base``) instead of the union of its variants.

        Returns:
            TypeNode: Reference to the emitted declaration.
        """
        context = self._context
        key = f"{ref}{_DISCRIMINATOR_BASE_SUFFIX}" if ignore_discriminator else ref
        existing = context.refs.get((key, only_mode)) or context.refs.get((key, OnlyMode.NONE))
        if existing is not None:
            return existing

        schema = self.resolver.resolve({"$ref": ref})
        title = schema.get("title") if isinstance(schema, dict) else None
        name = title if isinstance(title, str) and title.strip() else ref_name(ref)

        if self.is_true_enum(schema, name):
            return self.get_type_from_schema(schema, name, only_mode)

        body: Any = schema
        if ignore_discriminator:
            name = f"{name}Base"
        elif ref in context.discriminating_refs:
            body = self._discriminated_variants(schema)

        identifier = pascal_case(name)
        if self.options.merge_read_write_only:
            flags = NEITHER
        else:
            flags = check_only_mode(body, self.resolver, cache=context.only_mode_cache)

        variants: list[tuple[OnlyMode, str]] = [
            (OnlyMode.NONE, context.allocator.get_unique_alias(identifier))
        ]
        if flags.read_only:
            variants.append(
                (OnlyMode.READ_ONLY, context.allocator.get_unique_alias(f"{identifier}Read"))
            )
        if flags.write_only:
            variants.append(
                (OnlyMode.WRITE_ONLY, context.allocator.get_unique_alias(f"{identifier}Write"))
            )
        for mode, alias in variants:
            context.refs[(key, mode)] = TypeRef(alias)
        logger.debug("Allocated %s for %s", ", ".join(alias for _, alias in variants), key)

        for mode, alias in variants:
            alias_type = self.get_type_from_schema(body, None, mode)
            context.aliases.append(TypeAliasDecl(name=alias, type=alias_type))

        return context.refs.get((key, only_mode)) or context.refs[(key, OnlyMode.NONE)]

    def get_union_type(
        self,
        variants: list[Any],
        discriminator: Any,
        only_mode: OnlyMode = OnlyMode.NONE,
    ) -> UnionType:
        """Compile ``oneOf`` variants into an untagged or tagged union.

        Raises:
            DiscriminatorConfigError: For a discriminator without a
                ``propertyName`` or with inline (non-reference) variants.
        """
        if not isinstance(discriminator, dict):
            return UnionType(
                tuple(self.get_type_from_schema(item, None, only_mode) for item in variants)
            )

        property_name = discriminator.get("propertyName")
        if not isinstance(property_name, str) or not property_name:
            raise DiscriminatorConfigError("Discriminators require a propertyName")

        mapping = discriminator.get("mapping")
        if not isinstance(mapping, dict):
            mapping = {}
        mapped_basenames = {ref_basename(target) for target in mapping.values()}
        entries: list[tuple[str, Any]] = [
            (str(value), {"$ref": target}) for value, target in mapping.items()
        ]
        for variant in variants:
            if not is_reference(variant):
                raise DiscriminatorConfigError(
                    "Discriminators require references, not inline schemas"
                )
            basename = ref_basename(variant["$ref"])
            if basename not in mapped_basenames:
                entries.append((basename, variant))

        members = tuple(
            IntersectionType(
                (
                    _tag_object(property_name, value),
                    self.get_type_from_schema(variant, None, only_mode),
                )
            )
            for value, variant in entries
        )
        return UnionType(members, discriminator=property_name)

    def get_type_from_properties(
        self,
        properties: dict[str, Any],
        required: Optional[list[str]] = None,
        additional_properties: Any = None,
        only_mode: OnlyMode = OnlyMode.NONE,
    ) -> ObjectType:
        """Build an object literal type, keeping the properties of ``only_mode``."""
        required_names = set(required) if isinstance(required, list) else set()
        members: list[PropertySignature] = []
        for prop_name, prop_schema in properties.items():
            resolved = self.resolver.resolve(prop_schema)
            if not includes_property(
                resolved, only_mode, merge=self.options.merge_read_write_only
            ):
                continue
            is_required = prop_name in required_names
            prop_type = self.get_type_from_schema(prop_schema, prop_name, only_mode)
            if not is_required and self.options.union_undefined:
                prop_type = UnionType((prop_type, UNDEFINED))
            members.append(
                PropertySignature(name=prop_name, type=prop_type, optional=not is_required)
            )

        index_signature: Optional[TypeNode] = None
        if additional_properties is True:
            index_signature = ANY
        elif isinstance(additional_properties, dict):
            index_signature = self.get_type_from_schema(additional_properties, None, only_mode)
        return ObjectType(properties=tuple(members), index_signature=index_signature)

    def get_type_from_responses(
        self,
        responses: dict[str, Any],
        only_mode: OnlyMode = OnlyMode.READ_ONLY,
    ) -> UnionType:
        """Build the union of ``{status, data}`` objects for an operation's responses."""
        members: list[TypeNode] = []
        for code, response in responses.items():
            status_type: TypeNode = LiteralType(int(code)) if str(code).isdigit() else NUMBER
            props = [PropertySignature(name="status", type=status_type)]
            data_type = self.get_type_from_response(response, only_mode)
            if data_type is not None:
                props.append(PropertySignature(name="data", type=data_type))
            members.append(ObjectType(properties=tuple(props)))
        return UnionType(tuple(members))

    def get_type_from_response(
        self,
        response: Any,
        only_mode: OnlyMode = OnlyMode.READ_ONLY,
    ) -> Optional[TypeNode]:
        """Compile the payload type of one response, or None when it has no content."""
        resolved = self.resolver.resolve(response)
        if not isinstance(resolved, dict) or not isinstance(resolved.get("content"), dict):
            return None
        schema = get_schema_from_content(resolved["content"])
        return self.get_type_from_schema(schema, None, only_mode)

    def _get_intersection_type(self, schema: dict[str, Any], only_mode: OnlyMode) -> TypeNode:
        types: list[TypeNode] = []
        for child in schema["allOf"]:
            if is_reference(child) and child["$ref"] in self._context.discriminating_refs:
                tag = self._discriminator_tag(child, schema.get(COMPONENT_REF_PATH_KEY))
                if tag is not None:
                    types.append(tag)
                types.append(
                    self.get_ref_alias(child["$ref"], only_mode, ignore_discriminator=True)
                )
                continue
            if isinstance(child, dict) and not is_reference(child) and "required" in schema:
                child = {"required": schema["required"], **child}
            types.append(self.get_type_from_schema(child, None, only_mode))

        if _has_object_members(schema):
            types.append(
                self.get_type_from_properties(
                    schema.get("properties") or {},
                    schema.get("required"),
                    schema.get("additionalProperties"),
                    only_mode,
                )
            )
        return IntersectionType(tuple(types))

    def _discriminator_tag(self, base_ref: dict[str, Any], own_path: Any) -> Optional[ObjectType]:
        discriminator = self.resolver.resolve(base_ref)["discriminator"]
        property_name = discriminator.get("propertyName")
        if not isinstance(property_name, str) or not property_name:
            raise DiscriminatorConfigError("Discriminators require a propertyName")
        mapping = discriminator.get("mapping") or {}
        for value, target in mapping.items():
            if target == own_path:
                return _tag_object(property_name, str(value))
        return None

    def _discriminated_variants(self, schema: dict[str, Any]) -> dict[str, Any]:
        mapping = schema["discriminator"].get("mapping") or {}
        targets: list[str] = []
        for target in mapping.values():
            if target not in targets:
                targets.append(target)
        return {"oneOf": [{"$ref": target} for target in targets]}


def get_schema_from_content(content: dict[str, Any]) -> Any:
    """Pick the schema of a request or response ``content`` mapping.

    The first media-type key decides; when it carries no schema, empty and
    ``text/*`` content map to a string, anything else to binary.
    """
    content_type = next((key for key in content if is_mime_type(key)), None)
    if content_type is not None:
        media = content[content_type]
        if isinstance(media, dict) and media.get("schema") is not None:
            return media["schema"]
    if not content or any(str(key).startswith("text/") for key in content):
        return {"type": "string"}
    return {"type": "string", "format": "binary"}


def _has_object_members(schema: dict[str, Any]) -> bool:
    additional = schema.get("additionalProperties")
    return (
        isinstance(schema.get("properties"), dict)
        or additional is True
        or isinstance(additional, dict)
    )


def _tag_object(property_name: str, value: str) -> ObjectType:
    return ObjectType(properties=(PropertySignature(name=property_name, type=LiteralType(value)),))

"""Unit tests for schema-to-type compilation."""

from __future__ import annotations

from typing import Any

import pytest
from fixture_helpers import load_inline, make_context

from openapi_client_compiler.errors import DiscriminatorConfigError
from openapi_client_compiler.only_mode import OnlyMode
from openapi_client_compiler.schema_compiler import SchemaCompiler, get_schema_from_content
from openapi_client_compiler.type_nodes import (
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
    TypeRef,
    UnionType,
)

_DOCUMENT = """
openapi: 3.0.3
info:
  title: Compiler
  version: 1.0.0
paths: {}
components:
  schemas:
    User:
      type: object
      required: [id]
      properties:
        id:
          type: integer
          readOnly: true
        name:
          type: string
        password:
          type: string
          writeOnly: true
    Node:
      type: object
      properties:
        children:
          type: array
          items:
            $ref: "#/components/schemas/Node"
    Category:
      type: object
      properties:
        label:
          type: string
    Item:
      type: object
      properties:
        category:
          type: string
          enum: [food, toys]
        kind:
          $ref: "#/components/schemas/Category"
    Pet:
      type: object
      required: [petType]
      properties:
        petType:
          type: string
      discriminator:
        propertyName: petType
    Dog:
      allOf:
        - $ref: "#/components/schemas/Pet"
        - type: object
          properties:
            bark:
              type: boolean
    Cat:
      allOf:
        - $ref: "#/components/schemas/Pet"
        - type: object
          properties:
            meow:
              type: boolean
    Membership:
      type: object
      properties:
        owner:
          $ref: "#/components/schemas/User"
    Session:
      type: object
      properties:
        account:
          $ref: "#/components/schemas/Account"
    Account:
      type: object
      properties:
        secret:
          type: string
          writeOnly: true
        profile:
          $ref: "#/components/schemas/Profile"
    Profile:
      type: object
      properties:
        id:
          type: integer
          readOnly: true
        account:
          $ref: "#/components/schemas/Account"
    Avatar:
      type: object
      properties:
        profile:
          $ref: "#/components/schemas/Profile"
"""


def _ref(name: str) -> dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def _compiler(**options: Any) -> SchemaCompiler:
    return SchemaCompiler(make_context(load_inline(_DOCUMENT), **options))


def _alias_names(compiler: SchemaCompiler) -> list[str]:
    return [decl.name for decl in compiler._context.aliases]


@pytest.mark.parametrize(
    ("schema", "expected"),
    [
        ({"type": "string"}, STRING),
        ({"type": "integer"}, NUMBER),
        ({"type": "string", "nullable": True}, UnionType((STRING, NULL))),
        ({"type": ["string", "null"]}, UnionType((STRING, NULL))),
        ({"type": "array", "items": {"type": "boolean"}}, ArrayType(BOOLEAN)),
        (
            {"prefixItems": [{"type": "string"}, {"type": "number"}]},
            TupleType((STRING, NUMBER)),
        ),
        ({"type": "string", "format": "binary"}, BINARY),
        ({"const": "fixed"}, LiteralType("fixed")),
        ({"enum": ["a", "b"]}, UnionType((LiteralType("a"), LiteralType("b")))),
        ({"anyOf": [{"type": "string"}, {"type": "integer"}]}, UnionType((STRING, NUMBER))),
        ({"description": "anything"}, ANY),
        ("not a schema", ANY),
    ],
)
def test_schema_shapes(schema: Any, expected: Any) -> None:
    """Each schema shape compiles to its type expression."""
    assert _compiler().get_type_from_schema(schema) == expected


def test_object_properties_and_index_signature() -> None:
    """Required properties stay mandatory and additionalProperties types the index."""
    compiled = _compiler().get_type_from_schema(
        {
            "type": "object",
            "required": ["id"],
            "properties": {"id": {"type": "integer"}, "note": {"type": "string"}},
            "additionalProperties": {"type": "string"},
        }
    )

    assert compiled == ObjectType(
        properties=(
            PropertySignature("id", NUMBER),
            PropertySignature("note", STRING, optional=True),
        ),
        index_signature=STRING,
    )


def test_union_undefined_marks_optional_properties() -> None:
    """Optional properties are unioned with undefined when requested."""
    compiled = _compiler(union_undefined=True).get_type_from_schema(
        {"type": "object", "properties": {"note": {"type": "string"}}}
    )

    assert compiled == ObjectType(
        properties=(PropertySignature("note", UnionType((STRING, UNDEFINED)), optional=True),)
    )


def test_allof_with_sibling_properties_appends_object_member() -> None:
    """Sibling properties of an allOf become one more intersection member."""
    compiled = _compiler().get_type_from_schema(
        {
            "allOf": [{"type": "object", "properties": {"a": {"type": "string"}}}],
            "properties": {"b": {"type": "number"}},
            "required": ["a", "b"],
        }
    )

    assert compiled == IntersectionType(
        (
            ObjectType(properties=(PropertySignature("a", STRING),)),
            ObjectType(properties=(PropertySignature("b", NUMBER),)),
        )
    )


def test_references_are_emitted_once() -> None:
    """A reference used twice yields one alias."""
    compiler = _compiler()

    first = compiler.get_type_from_schema(_ref("Category"))
    second = compiler.get_type_from_schema(_ref("Category"))

    assert first == second == TypeRef("Category")
    assert _alias_names(compiler) == ["Category"]


def test_self_reference_terminates() -> None:
    """A cyclic schema refers to its own, already allocated alias."""
    compiler = _compiler()

    assert compiler.get_type_from_schema(_ref("Node")) == TypeRef("Node")
    (node,) = compiler._context.aliases
    assert node.type == ObjectType(
        properties=(PropertySignature("children", ArrayType(TypeRef("Node")), optional=True),)
    )


def test_read_write_split_produces_three_variants() -> None:
    """Read and write variants are emitted next to the base alias."""
    compiler = _compiler()

    assert compiler.get_ref_alias("#/components/schemas/User", OnlyMode.READ_ONLY) == TypeRef(
        "UserRead"
    )
    assert _alias_names(compiler) == ["User", "UserRead", "UserWrite"]

    properties = {
        decl.name: [prop.name for prop in decl.type.properties]
        for decl in compiler._context.aliases
    }
    assert properties == {
        "User": ["name"],
        "UserRead": ["id", "name"],
        "UserWrite": ["name", "password"],
    }


def test_merge_read_write_only_keeps_one_alias() -> None:
    """Merging keeps a single alias with every property."""
    compiler = _compiler(merge_read_write_only=True)

    assert compiler.get_ref_alias("#/components/schemas/User", OnlyMode.WRITE_ONLY) == TypeRef(
        "User"
    )
    (user,) = compiler._context.aliases
    assert [prop.name for prop in user.type.properties] == ["id", "name", "password"]


def test_enum_and_type_with_the_same_name_do_not_clobber() -> None:
    """An enum and an alias that both want ``Category`` get distinct names."""
    compiler = _compiler(use_enum_type=True)

    item = compiler.get_type_from_schema(_ref("Item"))

    assert item == TypeRef("Item")
    assert [decl.name for decl in compiler._context.enums.declarations] == ["Category"]
    assert "Category2" in _alias_names(compiler)
    (item_decl,) = [decl for decl in compiler._context.aliases if decl.name == "Item"]
    assert item_decl.type.properties == (
        PropertySignature("category", TypeRef("Category"), optional=True),
        PropertySignature("kind", TypeRef("Category2"), optional=True),
    )


def test_enums_stay_literal_unions_by_default() -> None:
    """Without ``use_enum_type`` named enums are literal unions."""
    compiler = _compiler()

    compiler.get_type_from_schema(_ref("Item"))

    assert compiler._context.enums.declarations == []


def test_discriminating_base_becomes_union_of_children() -> None:
    """A base schema with a discriminator is the union of the schemas extending it."""
    compiler = _compiler()

    assert compiler.get_type_from_schema(_ref("Pet")) == TypeRef("Pet")
    assert _alias_names(compiler) == ["PetBase", "Dog", "Cat", "Pet"]

    aliases = {decl.name: decl.type for decl in compiler._context.aliases}
    assert aliases["Pet"] == UnionType((TypeRef("Dog"), TypeRef("Cat")))
    assert aliases["Dog"] == IntersectionType(
        (
            ObjectType(properties=(PropertySignature("petType", LiteralType("Dog")),)),
            TypeRef("PetBase"),
            ObjectType(properties=(PropertySignature("bark", BOOLEAN, optional=True),)),
        )
    )
    assert aliases["PetBase"] == ObjectType(properties=(PropertySignature("petType", STRING),))


def test_tagged_union_prefers_explicit_mapping() -> None:
    """Explicit mappings come first, unmapped variants use their basename."""
    compiler = _compiler()

    union = compiler.get_union_type(
        [_ref("Category"), _ref("Node")],
        {"propertyName": "type", "mapping": {"cat": "#/components/schemas/Category"}},
    )

    assert union == UnionType(
        (
            IntersectionType(
                (
                    ObjectType(properties=(PropertySignature("type", LiteralType("cat")),)),
                    TypeRef("Category"),
                )
            ),
            IntersectionType(
                (
                    ObjectType(properties=(PropertySignature("type", LiteralType("Node")),)),
                    TypeRef("Node"),
                )
            ),
        ),
        discriminator="type",
    )


def test_discriminator_requires_references() -> None:
    """Inline variants cannot be discriminated."""
    with pytest.raises(DiscriminatorConfigError):
        _compiler().get_type_from_schema(
            {
                "oneOf": [{"type": "object"}, _ref("Category")],
                "discriminator": {"propertyName": "type"},
            }
        )


def test_discriminator_requires_property_name() -> None:
    """A discriminator without propertyName is rejected."""
    with pytest.raises(DiscriminatorConfigError):
        _compiler().get_union_type([_ref("Category")], {"mapping": {}})


def test_responses_become_status_data_union() -> None:
    """Each response maps to a status/data object; non-numeric codes use number."""
    compiled = _compiler().get_type_from_responses(
        {
            "200": {
                "description": "ok",
                "content": {"application/json": {"schema": {"type": "string"}}},
            },
            "default": {"description": "error"},
        }
    )

    assert compiled == UnionType(
        (
            ObjectType(
                properties=(
                    PropertySignature("status", LiteralType(200)),
                    PropertySignature("data", STRING),
                )
            ),
            ObjectType(properties=(PropertySignature("status", NUMBER),)),
        )
    )


def test_schema_from_content() -> None:
    """The first media type decides; schemaless content falls back by kind."""
    assert get_schema_from_content(
        {"application/json": {"schema": {"type": "integer"}}}
    ) == {"type": "integer"}
    assert get_schema_from_content({}) == {"type": "string"}
    assert get_schema_from_content({"text/plain": {}}) == {"type": "string"}
    assert get_schema_from_content({"application/octet-stream": {}}) == {
        "type": "string",
        "format": "binary",
    }


def test_nested_read_only_property_splits_outer_schema() -> None:
    """A readOnly property behind a reference gives the referring schema variants too."""
    compiler = _compiler()

    assert compiler.get_ref_alias(
        "#/components/schemas/Membership", OnlyMode.READ_ONLY
    ) == TypeRef("MembershipRead")
    assert _alias_names(compiler) == [
        "User",
        "UserRead",
        "UserWrite",
        "Membership",
        "MembershipRead",
        "MembershipWrite",
    ]
    aliases = {decl.name: decl.type for decl in compiler._context.aliases}
    assert aliases["MembershipRead"] == ObjectType(
        properties=(PropertySignature("owner", TypeRef("UserRead"), optional=True),)
    )
    assert aliases["MembershipWrite"] == ObjectType(
        properties=(PropertySignature("owner", TypeRef("UserWrite"), optional=True),)
    )


def test_only_mode_flows_through_compositions() -> None:
    """Union and intersection members use the variant of the requested mode."""
    compiler = _compiler()
    note = {"type": "object", "properties": {"note": {"type": "string"}}}

    one_of = compiler.get_type_from_schema(
        {"oneOf": [_ref("User"), _ref("Category")]}, None, OnlyMode.READ_ONLY
    )
    any_of = compiler.get_type_from_schema(
        {"anyOf": [_ref("User"), _ref("Category")]}, None, OnlyMode.WRITE_ONLY
    )
    all_of = compiler.get_type_from_schema(
        {"allOf": [_ref("User"), note]}, None, OnlyMode.READ_ONLY
    )

    assert one_of == UnionType((TypeRef("UserRead"), TypeRef("Category")))
    assert any_of == UnionType((TypeRef("UserWrite"), TypeRef("Category")))
    assert all_of == IntersectionType(
        (
            TypeRef("UserRead"),
            ObjectType(properties=(PropertySignature("note", STRING, optional=True),)),
        )
    )


def test_cycle_reached_from_two_roots_keeps_write_variant() -> None:
    """A schema reaching a cycle through an earlier scanned member still gets every variant."""
    compiler = _compiler()

    compiler.get_type_from_schema(_ref("Session"))

    assert compiler.get_ref_alias(
        "#/components/schemas/Avatar", OnlyMode.WRITE_ONLY
    ) == TypeRef("AvatarWrite")
    aliases = {decl.name: decl.type for decl in compiler._context.aliases}
    assert aliases["AccountWrite"].properties == (
        PropertySignature("secret", STRING, optional=True),
        PropertySignature("profile", TypeRef("ProfileWrite"), optional=True),
    )


def test_nullable_enum_values_stay_accepted() -> None:
    """A ``null`` enum value unions the named enum with null."""
    compiler = _compiler(use_enum_type=True)

    compiled = compiler.get_type_from_schema({"enum": ["a", None]}, "choice")

    assert compiled == UnionType((TypeRef("Choice"), NULL))
    (choice,) = compiler._context.enums.declarations
    assert [member.value for member in choice.members] == ["a"]
    assert compiler.get_type_from_schema(
        {"enum": ["b", None], "nullable": True}, "other"
    ) == UnionType((TypeRef("Other"), NULL))

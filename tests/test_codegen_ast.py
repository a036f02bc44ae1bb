"""Tests for rendering compiled declarations as a Python module."""

from __future__ import annotations

import ast
import inspect
from pathlib import Path
from types import ModuleType

import pytest
from fixture_helpers import FAKE_RUNTIME_PACKAGE, import_generated_module, load_fixture
from pydantic import ValidationError

from openapi_client_compiler.codegen_ast import render_api_module
from openapi_client_compiler.generator import ApiGenerator
from openapi_client_compiler.options import DEFAULT_RUNTIME_PACKAGE, GeneratorOptions
from openapi_client_compiler.type_nodes import (
    BOOLEAN,
    NUMBER,
    STRING,
    EnumDecl,
    EnumMember,
    GeneratedApi,
    IntersectionType,
    ObjectType,
    PropertySignature,
    TypeAliasDecl,
    TypeRef,
)


def _render_fixture(name: str, **options: object) -> str:
    generator_options = GeneratorOptions(runtime_package=FAKE_RUNTIME_PACKAGE, **options)
    api = ApiGenerator(load_fixture(name), generator_options).generate()
    return render_api_module(api, runtime_package=generator_options.runtime_package).source


def _import_fixture(
    name: str,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    **options: object,
) -> ModuleType:
    return import_generated_module(_render_fixture(name, **options), tmp_path, monkeypatch)


def _class_names(source: str) -> list[str]:
    return [node.name for node in ast.parse(source).body if isinstance(node, ast.ClassDef)]


def test_object_alias_renders_base_model() -> None:
    """Object aliases become models with aliased fields and typed extras."""
    api = GeneratedApi(
        declarations=(
            TypeAliasDecl(
                name="Pet",
                type=ObjectType(
                    properties=(
                        PropertySignature("petType", STRING),
                        PropertySignature("class", NUMBER, optional=True),
                    ),
                    index_signature=NUMBER,
                ),
            ),
        )
    )

    rendered = render_api_module(api)

    assert "class Pet(BaseModel):" in rendered.source
    assert "model_config = ConfigDict(populate_by_name=True, extra='allow')" in rendered.source
    assert "__pydantic_extra__: dict[str, float] = Field(init=False)" in rendered.source
    assert "pet_type: str = Field(..., alias='petType')" in rendered.source
    assert "class_: Optional[float] = Field(None, alias='class')" in rendered.source
    assert "Pet.model_rebuild()" in rendered.source
    assert DEFAULT_RUNTIME_PACKAGE not in rendered.source
    assert rendered.warnings == ()


def test_enums_render_with_value_mixins() -> None:
    """String and integer enums mix in their value type."""
    api = GeneratedApi(
        declarations=(
            EnumDecl("Status", (EnumMember("Open", "open"), EnumMember("Closed", "closed"))),
            EnumDecl("Level", (EnumMember("x_1", 1), EnumMember("x_2", 2))),
            EnumDecl("Mixed", (EnumMember("A", "a"), EnumMember("x_1", 1))),
        )
    )

    source = render_api_module(api).source

    assert "class Status(str, Enum):" in source
    assert "Open = 'open'" in source
    assert "class Level(int, Enum):" in source
    assert "class Mixed(Enum):" in source
    assert "from enum import Enum" in source


def test_base_classes_precede_subclasses() -> None:
    """Intersections with a model become subclasses declared after their base."""
    api = GeneratedApi(
        declarations=(
            TypeAliasDecl(
                "Dog",
                IntersectionType(
                    (TypeRef("Animal"), ObjectType((PropertySignature("bark", BOOLEAN),)))
                ),
            ),
            TypeAliasDecl("Animal", ObjectType((PropertySignature("name", STRING),))),
        )
    )

    source = render_api_module(api).source

    assert _class_names(source) == ["Animal", "Dog"]
    assert "class Dog(Animal):" in source


def test_inline_objects_are_hoisted() -> None:
    """Nested object types get their own model named after the owner and field."""
    api = GeneratedApi(
        declarations=(
            TypeAliasDecl(
                "Owner",
                ObjectType(
                    (
                        PropertySignature(
                            "address", ObjectType((PropertySignature("street", STRING),))
                        ),
                    )
                ),
            ),
        )
    )

    source = render_api_module(api).source

    assert _class_names(source) == ["OwnerAddress", "Owner"]
    assert "address: OwnerAddress = Field(...)" in source


def test_unrepresentable_intersection_degrades_to_any() -> None:
    """Intersections with non-object members render as Any with a warning."""
    api = GeneratedApi(
        declarations=(
            TypeAliasDecl(
                "Weird",
                IntersectionType((STRING, ObjectType((PropertySignature("a", STRING),)))),
            ),
        )
    )

    rendered = render_api_module(api)

    assert "class Weird(RootModel):" in rendered.source
    assert "root: Any" in rendered.source
    assert len(rendered.warnings) == 1


def test_rendering_is_deterministic() -> None:
    """Two runs over the same document give byte-identical modules."""
    assert _render_fixture("petstore.yaml") == _render_fixture("petstore.yaml")
    assert _render_fixture("zoo_polymorphic.yaml") == _render_fixture("zoo_polymorphic.yaml")


def test_module_header() -> None:
    """The module documents its API and imports the runtime package."""
    source = _render_fixture("petstore.yaml")
    parsed = ast.parse(source)

    assert ast.get_docstring(parsed) == "Client for Petstore."
    assert f"from {FAKE_RUNTIME_PACKAGE} import qs, runtime" in source
    assert "from __future__ import annotations" in source


def test_generated_models_validate_data(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Generated models import and validate payloads."""
    module = _import_fixture("petstore.yaml", tmp_path, monkeypatch)

    pet = module.PetRead.model_validate(
        {"id": 1, "name": "Rex", "tag": None, "status": "sold", "category": {"id": 2}}
    )

    assert module.BASE_URL == "https://eu.petstore.example/v1"
    assert module.SERVERS == {"server1": "https://eu.petstore.example/v1"}
    assert isinstance(pet.category, module.Category)
    assert pet.status == "sold"
    assert "id" not in module.Pet.model_fields
    with pytest.raises(ValidationError):
        module.PetRead.model_validate({"id": 1, "name": "Rex", "status": "lost"})


def test_enum_type_models(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Named enums validate into Enum members."""
    module = _import_fixture("petstore.yaml", tmp_path, monkeypatch, use_enum_type=True)

    pet = module.PetRead.model_validate({"id": 1, "name": "Rex", "status": "pending"})

    assert pet.status is module.Status.Pending


def test_generated_functions_call_runtime(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Operation functions build URLs and request options for the runtime."""
    module = _import_fixture("petstore.yaml", tmp_path, monkeypatch)
    calls = module.runtime.calls
    calls.clear()

    module.list_pets(limit=10)
    module.show_pet_by_id(7, x_request_id="abc")
    pet = module.Pet(name="Rex")
    module.create_pet(pet)
    module.upload_photo(3)
    module.delete_pets_by_pet_id(3, opts={"headers": {"Authorization": "token"}})

    assert calls == [
        ("json", "/pets?limit=10", {}),
        ("json", "/pets/7", {"headers": {"X-Request-Id": "abc"}}),
        ("json", "/pets", {"method": "POST", "body": pet, "content": "json"}),
        ("text", "/pets/3/photo", {"method": "PUT", "body": None, "content": "multipart"}),
        ("text", "/pets/3", {"headers": {"Authorization": "token"}, "method": "DELETE"}),
    ]


def test_generated_function_signatures(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Optional parameters and request options are keyword-only."""
    module = _import_fixture("petstore.yaml", tmp_path, monkeypatch)

    parameters = inspect.signature(module.list_pets).parameters
    assert list(parameters) == ["limit", "tags", "opts"]
    assert all(
        param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is None
        for param in parameters.values()
    )
    upload = inspect.signature(module.upload_photo).parameters
    assert upload["pet_id"].kind is inspect.Parameter.POSITIONAL_OR_KEYWORD
    assert upload["body"].default is None
    assert module.list_pets.__doc__ == "List all pets."


def test_optimistic_functions_unwrap_data(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Optimistic mode returns the payload instead of the status envelope."""
    module = _import_fixture("petstore.yaml", tmp_path, monkeypatch, optimistic=True)

    assert module.list_pets() is None


def test_polymorphic_models(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Discriminated hierarchies and tagged unions validate to the right class."""
    module = _import_fixture("zoo_polymorphic.yaml", tmp_path, monkeypatch)

    pet = module.Pet.model_validate({"petType": "Dog", "name": "Rex", "bark": True}).root
    assert isinstance(pet, module.Dog)
    assert isinstance(pet, module.PetBase)
    assert pet.bark is True

    kennel = module.Adoption.model_validate({"kind": "kennel", "size": 3}).root
    cattery = module.Adoption.model_validate({"kind": "Cattery", "floors": 2}).root
    assert isinstance(kennel, module.AdoptionKennel)
    assert isinstance(kennel, module.Kennel)
    assert isinstance(cattery, module.AdoptionCattery)
    with pytest.raises(ValidationError):
        module.Adoption.model_validate({"kind": "aviary"})

    tree = module.Node.model_validate({"value": "a", "children": [{"value": "b"}]})
    assert tree.children[0].value == "b"


def test_tagged_union_uses_pydantic_discriminator() -> None:
    """Tagged unions of models render as pydantic discriminated unions."""
    source = _render_fixture("zoo_polymorphic.yaml")

    assert (
        "root: Annotated[Union[AdoptionKennel, AdoptionCattery], Field(discriminator='kind')]"
        in source
    )
    assert "class AdoptionKennel(Kennel):" in source
    assert "class Dog(PetBase):" in source

"""AST-based Python code generation for a compiled client module."""

from __future__ import annotations

import ast
from collections.abc import Iterable, Iterator
from typing import Optional

from pydantic import BaseModel, RootModel

from .model_types import FieldDef, ModelDef, RenderedModule
from .naming import RESERVED_MODULE_NAMES, IdentifierAllocator, pascal_case, to_identifier
from .operations import QS_NAMESPACE, RUNTIME_NAMESPACE
from .options import DEFAULT_RUNTIME_PACKAGE
from .type_nodes import (
    KEYWORD_ANY,
    KEYWORD_BINARY,
    KEYWORD_BOOLEAN,
    KEYWORD_NULL,
    KEYWORD_NUMBER,
    KEYWORD_STRING,
    KEYWORD_UNDEFINED,
    ArrayType,
    AttributeExpr,
    CallExpr,
    ConstExpr,
    DictExpr,
    EnumDecl,
    Expr,
    FunctionDecl,
    GeneratedApi,
    IntersectionType,
    KeywordType,
    LiteralType,
    NameExpr,
    ObjectType,
    OrExpr,
    ParameterDef,
    TemplateExpr,
    TupleType,
    TypeAliasDecl,
    TypeNode,
    TypeRef,
    UnionType,
)

_TYPING_IMPORT_ORDER: tuple[str, ...] = (
    "Annotated",
    "Any",
    "Literal",
    "Optional",
    "Union",
)

_PYDANTIC_IMPORT_ORDER: tuple[str, ...] = (
    "BaseModel",
    "ConfigDict",
    "Field",
    "RootModel",
)

_KEYWORD_ANNOTATIONS: dict[str, str] = {
    KEYWORD_ANY: "Any",
    KEYWORD_STRING: "str",
    KEYWORD_NUMBER: "float",
    KEYWORD_BOOLEAN: "bool",
    KEYWORD_NULL: "None",
    KEYWORD_UNDEFINED: "None",
    KEYWORD_BINARY: "bytes",
}

_BASEMODEL_RESERVED = set(dir(BaseModel))
_ROOTMODEL_RESERVED = set(dir(RootModel))
_BUILTIN_IDENTIFIER_RESERVED = {
    "bool",
    "bytes",
    "dict",
    "float",
    "int",
    "list",
    "str",
    "tuple",
    "type",
}


def render_api_module(
    api: GeneratedApi,
    *,
    runtime_package: str = DEFAULT_RUNTIME_PACKAGE,
) -> RenderedModule:
    """Render compiled declarations as Python source code using AST.

    Args:
        api (GeneratedApi): Ordered declarations produced by the generator.
        runtime_package (str): Package providing the ``runtime`` and ``qs`` modules.

    Returns:
        RenderedModule: Generated source and any rendering warnings.
    """
    renderer = _ModuleRenderer(api)
    enums = [_enum_to_ast(decl) for decl in api.enums()]
    renderer.add_aliases()
    functions = [renderer.function_to_ast(decl) for decl in api.functions()]
    models = renderer.ordered_models()

    body: list[ast.stmt] = [
        ast.Assign(
            targets=[ast.Name(id="BASE_URL", ctx=ast.Store())],
            value=ast.Constant(value=api.base_url),
        )
    ]
    if api.servers:
        body.append(
            ast.Assign(
                targets=[ast.Name(id="SERVERS", ctx=ast.Store())],
                value=ast.Dict(
                    keys=[ast.Constant(value=name) for name, _ in api.servers],
                    values=[ast.Constant(value=url) for _, url in api.servers],
                ),
            )
        )
    body.extend(enums)
    body.extend(_model_to_ast(model) for model in models)
    body.extend(_model_rebuild_ast(model) for model in models)
    body.extend(functions)

    docstring = f"Client for {api.title}." if api.title else "Generated API client."
    header: list[ast.stmt] = [
        ast.Expr(value=ast.Constant(value=docstring)),
        ast.ImportFrom(module="__future__", names=[ast.alias(name="annotations")], level=0),
    ]
    header.extend(_build_imports(body, runtime_package=runtime_package))

    module = ast.Module(body=[*header, *body], type_ignores=[])
    ast.fix_missing_locations(module)
    return RenderedModule(
        source=ast.unparse(module) + "\n",
        warnings=tuple(renderer.warnings),
    )


class _ModuleRenderer:
    """Turn aliases into pydantic models, hoisting anonymous object types."""

    def __init__(self, api: GeneratedApi) -> None:
        self._api = api
        self._aliases = {decl.name: decl for decl in api.aliases()}
        self._names = IdentifierAllocator(RESERVED_MODULE_NAMES)
        for decl in api.declarations:
            self._names.get_unique_alias(decl.name)
        self._models: list[ModelDef] = []
        self.warnings: list[str] = []

    def add_aliases(self) -> None:
        """Build one model per alias, plus the models hoisted out of them."""
        for decl in self._api.aliases():
            self._alias_to_model(decl)

    def ordered_models(self) -> list[ModelDef]:
        """Return every model built so far, base classes first."""
        return _order_models(self._models)

    def function_to_ast(self, decl: FunctionDecl) -> ast.FunctionDef:
        func_hint = pascal_case(decl.name)
        args = [self._argument(param, func_hint) for param in decl.parameters]
        defaults: list[ast.expr] = [
            ast.Constant(value=None) for param in decl.parameters if param.optional
        ]
        keyword_params = [*decl.optional_parameters, decl.options_parameter]
        kwonlyargs = [self._argument(param, func_hint) for param in keyword_params]

        body: list[ast.stmt] = []
        if decl.docstring:
            body.append(ast.Expr(value=ast.Constant(value=decl.docstring)))
        body.append(ast.Return(value=_expr_to_ast(decl.return_expr)))

        returns: Optional[ast.expr] = None
        if decl.return_type is not None:
            returns = _expr(self._annotation(decl.return_type, f"{func_hint}Response"))

        return ast.FunctionDef(
            name=decl.name,
            args=ast.arguments(
                posonlyargs=[],
                args=args,
                vararg=None,
                kwonlyargs=kwonlyargs,
                kw_defaults=[ast.Constant(value=None) for _ in kwonlyargs],
                kwarg=None,
                defaults=defaults,
            ),
            body=body,
            decorator_list=[],
            returns=returns,
            type_params=[],
        )

    def _argument(self, param: ParameterDef, func_hint: str) -> ast.arg:
        annotation = "Any"
        if param.type is not None:
            annotation = self._annotation(param.type, f"{func_hint}{pascal_case(param.name)}")
        if param.optional:
            annotation = _optional(annotation)
        return ast.arg(arg=param.name, annotation=_expr(annotation))

    def _alias_to_model(self, decl: TypeAliasDecl) -> None:
        alias_type = decl.type
        if isinstance(alias_type, ObjectType) and alias_type.properties:
            self._build_object_model(decl.name, [alias_type], ())
        elif isinstance(alias_type, IntersectionType) and self._is_class_like(alias_type):
            self._build_intersection_model(decl.name, alias_type)
        else:
            annotation = self._annotation(alias_type, decl.name)
            self._models.append(ModelDef(name=decl.name, root_annotation=annotation))

    def _build_intersection_model(self, name: str, intersection: IntersectionType) -> str:
        bases: list[str] = []
        objects: list[ObjectType] = []
        for member in _flatten(intersection):
            if isinstance(member, TypeRef):
                if member.name not in bases:
                    bases.append(member.name)
            elif isinstance(member, ObjectType):
                objects.append(member)
        return self._build_object_model(name, objects, tuple(bases))

    def _build_object_model(
        self,
        name: str,
        objects: list[ObjectType],
        bases: tuple[str, ...],
    ) -> str:
        model = ModelDef(name=name, bases=bases)
        fields: dict[str, FieldDef] = {}
        used_field_names: set[str] = set()
        for obj in objects:
            for prop in obj.properties:
                annotation = self._annotation(prop.type, f"{name}{pascal_case(prop.name)}")
                if prop.optional:
                    annotation = _optional(annotation)
                existing = fields.get(prop.name)
                field_name = existing.name if existing else _field_name(prop.name, used_field_names)
                used_field_names.add(field_name)
                fields[prop.name] = FieldDef(
                    name=field_name,
                    source_name=prop.name,
                    annotation=annotation,
                    required=not prop.optional,
                )
            if obj.index_signature is not None:
                model.allow_extra = True
                value_annotation = self._annotation(obj.index_signature, f"{name}Value")
                if value_annotation != "Any":
                    model.extra_annotation = f"dict[str, {value_annotation}]"
        model.fields = list(fields.values())
        self._models.append(model)
        return name

    def _annotation(self, node: TypeNode, hint: str) -> str:
        if isinstance(node, KeywordType):
            return _KEYWORD_ANNOTATIONS.get(node.keyword, "Any")
        if isinstance(node, LiteralType):
            return f"Literal[{node.value!r}]"
        if isinstance(node, TypeRef):
            return node.name
        if isinstance(node, ArrayType):
            return f"list[{self._annotation(node.item, f'{hint}Item')}]"
        if isinstance(node, TupleType):
            if not node.items:
                return "tuple[()]"
            items = [
                self._annotation(item, f"{hint}Item{index + 1}")
                for index, item in enumerate(node.items)
            ]
            return f"tuple[{', '.join(items)}]"
        if isinstance(node, UnionType):
            return self._union_annotation(node, hint)
        if isinstance(node, ObjectType):
            if not node.properties:
                value = "Any"
                if node.index_signature is not None:
                    value = self._annotation(node.index_signature, f"{hint}Value")
                return f"dict[str, {value}]"
            return self._build_object_model(self._hoisted_name(hint), [node], ())
        if self._is_class_like(node):
            return self._build_intersection_model(self._hoisted_name(hint), node)
        self.warnings.append(f"Intersection type for {hint} has no class form; typed as Any")
        return "Any"

    def _union_annotation(self, union: UnionType, hint: str) -> str:
        members: list[str] = []
        literals: list[str] = []
        literal_slot: Optional[int] = None
        nullable = False
        for index, member in enumerate(union.members):
            if isinstance(member, LiteralType):
                if literal_slot is None:
                    literal_slot = len(members)
                literals.append(repr(member.value))
                continue
            annotation = self._annotation(member, _member_hint(member, hint, index))
            if annotation == "None":
                nullable = True
            elif annotation not in members:
                members.append(annotation)
        if literal_slot is not None:
            members.insert(literal_slot, f"Literal[{', '.join(dict.fromkeys(literals))}]")

        if not members:
            return "None" if nullable else "Any"
        core = members[0] if len(members) == 1 else f"Union[{', '.join(members)}]"
        if union.discriminator and len(members) > 1 and self._is_tagged(union):
            discriminator = _field_name(union.discriminator, set())
            core = f"Annotated[{core}, Field(discriminator={discriminator!r})]"
        return _optional(core) if nullable else core

    def _is_tagged(self, union: UnionType) -> bool:
        for member in union.members:
            if not isinstance(member, IntersectionType) or not self._is_class_like(member):
                return False
            tags = [
                prop
                for obj in _flatten(member)
                if isinstance(obj, ObjectType)
                for prop in obj.properties
                if prop.name == union.discriminator and isinstance(prop.type, LiteralType)
            ]
            if not tags:
                return False
        return True

    def _is_class_like(self, node: TypeNode, seen: frozenset[str] = frozenset()) -> bool:
        if isinstance(node, ObjectType):
            return True
        if isinstance(node, TypeRef):
            decl = self._aliases.get(node.name)
            if decl is None or node.name in seen:
                return False
            alias_type = decl.type
            if isinstance(alias_type, ObjectType):
                return bool(alias_type.properties)
            return isinstance(alias_type, IntersectionType) and self._is_class_like(
                alias_type, seen | {node.name}
            )
        if isinstance(node, IntersectionType):
            return bool(node.members) and all(
                self._is_class_like(member, seen) for member in node.members
            )
        return False

    def _hoisted_name(self, hint: str) -> str:
        return self._names.get_unique_alias(pascal_case(hint))


def _member_hint(member: TypeNode, hint: str, index: int) -> str:
    if isinstance(member, IntersectionType):
        refs = [item.name for item in _flatten(member) if isinstance(item, TypeRef)]
        if refs:
            return f"{hint}{refs[-1]}"
    return f"{hint}Option{index + 1}"


def _flatten(intersection: IntersectionType) -> Iterator[TypeNode]:
    for member in intersection.members:
        if isinstance(member, IntersectionType):
            yield from _flatten(member)
        else:
            yield member


def _optional(annotation: str) -> str:
    if annotation in ("None", "Any") or annotation.startswith("Optional["):
        return annotation
    return f"Optional[{annotation}]"


def _field_name(source_name: str, used_names: set[str]) -> str:
    candidate = to_identifier(source_name)
    if candidate.startswith("_"):
        candidate = f"field{candidate}"
    if (
        candidate in _BASEMODEL_RESERVED
        or candidate in _ROOTMODEL_RESERVED
        or candidate in _BUILTIN_IDENTIFIER_RESERVED
    ):
        candidate = f"{candidate}_field"
    if candidate not in used_names:
        return candidate

    suffix = 2
    while f"{candidate}_{suffix}" in used_names:
        suffix += 1
    return f"{candidate}_{suffix}"


def _order_models(models: list[ModelDef]) -> list[ModelDef]:
    """Order models so every base class precedes its subclasses."""
    by_name = {model.name: model for model in models}
    for model in models:
        model.bases = _prune_bases(model.bases, by_name)

    ordered: list[ModelDef] = []
    visited: set[str] = set()

    def visit(model: ModelDef) -> None:
        if model.name in visited:
            return
        visited.add(model.name)
        for base in model.bases:
            if base in by_name:
                visit(by_name[base])
        ordered.append(model)

    for model in models:
        visit(model)
    return ordered


def _prune_bases(bases: tuple[str, ...], by_name: dict[str, ModelDef]) -> tuple[str, ...]:
    # A base that is already an ancestor of another base would break the MRO.
    inherited: set[str] = set()
    for base in bases:
        inherited |= _ancestors(base, by_name, set())
    return tuple(base for base in bases if base not in inherited)


def _ancestors(name: str, by_name: dict[str, ModelDef], seen: set[str]) -> set[str]:
    model = by_name.get(name)
    if model is None or name in seen:
        return set()
    seen.add(name)
    result: set[str] = set()
    for base in model.bases:
        result.add(base)
        result |= _ancestors(base, by_name, seen)
    return result


def _enum_to_ast(decl: EnumDecl) -> ast.ClassDef:
    values = [member.value for member in decl.members]
    bases: list[ast.expr] = [ast.Name(id="Enum", ctx=ast.Load())]
    if values and all(isinstance(value, str) for value in values):
        bases.insert(0, ast.Name(id="str", ctx=ast.Load()))
    elif values and all(isinstance(value, int) and not isinstance(value, bool) for value in values):
        bases.insert(0, ast.Name(id="int", ctx=ast.Load()))

    class_body: list[ast.stmt] = [
        ast.Assign(
            targets=[ast.Name(id=member.name, ctx=ast.Store())],
            value=ast.Constant(value=member.value),
        )
        for member in decl.members
    ]
    if not class_body:
        class_body.append(ast.Pass())
    return ast.ClassDef(
        name=decl.name,
        bases=bases,
        keywords=[],
        body=class_body,
        decorator_list=[],
        type_params=[],
    )


def _model_to_ast(model: ModelDef) -> ast.ClassDef:
    bases: list[ast.expr]
    class_body: list[ast.stmt] = []
    if model.is_root:
        bases = [ast.Name(id="RootModel", ctx=ast.Load())]
        class_body.append(
            ast.AnnAssign(
                target=ast.Name(id="root", ctx=ast.Store()),
                annotation=_expr(model.root_annotation or "Any"),
                value=None,
                simple=1,
            )
        )
    else:
        bases = [ast.Name(id=base, ctx=ast.Load()) for base in model.bases] or [
            ast.Name(id="BaseModel", ctx=ast.Load())
        ]

    config_keywords: list[ast.keyword] = []
    if any(field.name != field.source_name for field in model.fields):
        config_keywords.append(
            ast.keyword(arg="populate_by_name", value=ast.Constant(value=True))
        )
    if model.allow_extra:
        config_keywords.append(ast.keyword(arg="extra", value=ast.Constant(value="allow")))
    if config_keywords:
        class_body.append(
            ast.Assign(
                targets=[ast.Name(id="model_config", ctx=ast.Store())],
                value=ast.Call(
                    func=ast.Name(id="ConfigDict", ctx=ast.Load()),
                    args=[],
                    keywords=config_keywords,
                ),
            )
        )

    if model.extra_annotation:
        class_body.append(
            ast.AnnAssign(
                target=ast.Name(id="__pydantic_extra__", ctx=ast.Store()),
                annotation=_expr(model.extra_annotation),
                value=ast.Call(
                    func=ast.Name(id="Field", ctx=ast.Load()),
                    args=[],
                    keywords=[ast.keyword(arg="init", value=ast.Constant(value=False))],
                ),
                simple=1,
            )
        )
    for field in model.fields:
        class_body.append(_field_to_ast(field))

    if not class_body:
        class_body.append(ast.Pass())

    return ast.ClassDef(
        name=model.name,
        bases=bases,
        keywords=[],
        body=class_body,
        decorator_list=[],
        type_params=[],
    )


def _field_to_ast(field: FieldDef) -> ast.AnnAssign:
    keywords: list[ast.keyword] = []
    if field.source_name != field.name:
        keywords.append(ast.keyword(arg="alias", value=ast.Constant(value=field.source_name)))

    default_value = ast.Constant(value=Ellipsis if field.required else None)
    call = ast.Call(
        func=ast.Name(id="Field", ctx=ast.Load()),
        args=[default_value],
        keywords=keywords,
    )
    return ast.AnnAssign(
        target=ast.Name(id=field.name, ctx=ast.Store()),
        annotation=_expr(field.annotation),
        value=call,
        simple=1,
    )


def _model_rebuild_ast(model: ModelDef) -> ast.stmt:
    return ast.Expr(
        value=ast.Call(
            func=ast.Attribute(
                value=ast.Name(id=model.name, ctx=ast.Load()),
                attr="model_rebuild",
                ctx=ast.Load(),
            ),
            args=[],
            keywords=[],
        )
    )


def _expr_to_ast(expr: Expr) -> ast.expr:
    if isinstance(expr, NameExpr):
        return ast.Name(id=expr.id, ctx=ast.Load())
    if isinstance(expr, ConstExpr):
        return ast.Constant(value=expr.value)
    if isinstance(expr, AttributeExpr):
        return ast.Attribute(value=_expr_to_ast(expr.value), attr=expr.attr, ctx=ast.Load())
    if isinstance(expr, CallExpr):
        return ast.Call(
            func=_expr_to_ast(expr.func),
            args=[_expr_to_ast(arg) for arg in expr.args],
            keywords=[],
        )
    if isinstance(expr, DictExpr):
        return ast.Dict(
            keys=[None if key is None else _expr_to_ast(key) for key, _ in expr.entries],
            values=[_expr_to_ast(value) for _, value in expr.entries],
        )
    if isinstance(expr, OrExpr):
        return ast.BoolOp(op=ast.Or(), values=[_expr_to_ast(expr.left), _expr_to_ast(expr.right)])
    if all(isinstance(part, str) for part in expr.parts):
        return ast.Constant(value="".join(str(part) for part in expr.parts))
    values: list[ast.expr] = []
    for part in expr.parts:
        if isinstance(part, str):
            values.append(ast.Constant(value=part))
        else:
            values.append(
                ast.FormattedValue(value=_expr_to_ast(part), conversion=-1, format_spec=None)
            )
    return ast.JoinedStr(values=values)


def _expr(code: str) -> ast.expr:
    parsed = ast.parse(code, mode="eval")
    return parsed.body


def _build_imports(body: list[ast.stmt], *, runtime_package: str) -> list[ast.stmt]:
    used_names = _collect_loaded_names(body)

    imports: list[ast.stmt] = []
    if "Enum" in used_names:
        imports.append(
            ast.ImportFrom(module="enum", names=[ast.alias(name="Enum")], level=0)
        )
    typing_imports = [name for name in _TYPING_IMPORT_ORDER if name in used_names]
    if typing_imports:
        imports.append(
            ast.ImportFrom(
                module="typing",
                names=[ast.alias(name=name) for name in typing_imports],
                level=0,
            )
        )
    pydantic_imports = [name for name in _PYDANTIC_IMPORT_ORDER if name in used_names]
    if pydantic_imports:
        imports.append(
            ast.ImportFrom(
                module="pydantic",
                names=[ast.alias(name=name) for name in pydantic_imports],
                level=0,
            )
        )
    runtime_imports = [
        name for name in (QS_NAMESPACE, RUNTIME_NAMESPACE) if name in used_names
    ]
    if runtime_imports:
        imports.append(
            ast.ImportFrom(
                module=runtime_package,
                names=[ast.alias(name=name) for name in runtime_imports],
                level=0,
            )
        )
    return imports


def _collect_loaded_names(body: Iterable[ast.stmt]) -> set[str]:
    loaded_names: set[str] = set()
    for statement in body:
        for node in ast.walk(statement):
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load):
                loaded_names.add(node.id)
    return loaded_names

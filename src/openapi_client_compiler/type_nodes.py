"""Abstract declaration model produced by the compiler and consumed by the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TypeAlias, Union

LiteralValue: TypeAlias = Union[str, int, float, bool]

KEYWORD_ANY = "any"
KEYWORD_STRING = "string"
KEYWORD_NUMBER = "number"
KEYWORD_BOOLEAN = "boolean"
KEYWORD_NULL = "null"
KEYWORD_UNDEFINED = "undefined"
KEYWORD_BINARY = "binary"


@dataclass(frozen=True)
class KeywordType:
    """A built-in type such as ``string`` or the ``any`` placeholder."""

    keyword: str


@dataclass(frozen=True)
class LiteralType:
    """A single literal value."""

    value: LiteralValue


@dataclass(frozen=True)
class TypeRef:
    """A reference to a named declaration."""

    name: str


@dataclass(frozen=True)
class ArrayType:
    item: TypeNode


@dataclass(frozen=True)
class TupleType:
    items: tuple[TypeNode, ...]


@dataclass(frozen=True)
class UnionType:
    """A union; ``discriminator`` names the tag property of a tagged union."""

    members: tuple[TypeNode, ...]
    discriminator: Optional[str] = None


@dataclass(frozen=True)
class IntersectionType:
    members: tuple[TypeNode, ...]


@dataclass(frozen=True)
class PropertySignature:
    name: str
    type: TypeNode
    optional: bool = False


@dataclass(frozen=True)
class ObjectType:
    """An object literal; ``index_signature`` types additional properties."""

    properties: tuple[PropertySignature, ...] = ()
    index_signature: Optional[TypeNode] = None


TypeNode: TypeAlias = Union[
    KeywordType,
    LiteralType,
    TypeRef,
    ArrayType,
    TupleType,
    UnionType,
    IntersectionType,
    ObjectType,
]

ANY = KeywordType(KEYWORD_ANY)
STRING = KeywordType(KEYWORD_STRING)
NUMBER = KeywordType(KEYWORD_NUMBER)
BOOLEAN = KeywordType(KEYWORD_BOOLEAN)
NULL = KeywordType(KEYWORD_NULL)
UNDEFINED = KeywordType(KEYWORD_UNDEFINED)
BINARY = KeywordType(KEYWORD_BINARY)


@dataclass(frozen=True)
class NameExpr:
    id: str


@dataclass(frozen=True)
class ConstExpr:
    value: Union[str, int, float, bool, None]


@dataclass(frozen=True)
class AttributeExpr:
    value: Expr
    attr: str


@dataclass(frozen=True)
class CallExpr:
    func: Expr
    args: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class DictExpr:
    """A dict display; an entry with a ``None`` key spreads its value."""

    entries: tuple[tuple[Optional[Expr], Expr], ...]


@dataclass(frozen=True)
class OrExpr:
    left: Expr
    right: Expr


@dataclass(frozen=True)
class TemplateExpr:
    """An f-string: literal text interleaved with expressions."""

    parts: tuple[Union[str, Expr], ...]


Expr: TypeAlias = Union[NameExpr, ConstExpr, AttributeExpr, CallExpr, DictExpr, OrExpr, TemplateExpr]


@dataclass(frozen=True)
class TypeAliasDecl:
    name: str
    type: TypeNode


@dataclass(frozen=True)
class EnumMember:
    name: str
    value: Union[str, int, float, bool]


@dataclass(frozen=True)
class EnumDecl:
    name: str
    members: tuple[EnumMember, ...]


@dataclass(frozen=True)
class ParameterDef:
    """One argument of a generated operation function."""

    name: str
    type: Optional[TypeNode]
    optional: bool = False


@dataclass(frozen=True)
class FunctionDecl:
    """One generated operation function.

    ``parameters`` are positional, ``optional_parameters`` form the group of
    optional request parameters, and ``options_parameter`` is the trailing
    request-options argument.
    """

    name: str
    parameters: tuple[ParameterDef, ...]
    optional_parameters: tuple[ParameterDef, ...]
    options_parameter: ParameterDef
    return_expr: Expr
    return_type: Optional[TypeNode] = None
    docstring: Optional[str] = None
    method: str = "GET"
    path: str = "/"


Declaration: TypeAlias = Union[TypeAliasDecl, EnumDecl, FunctionDecl]


@dataclass(frozen=True)
class GeneratedApi:
    """Ordered declarations of one generated client module."""

    declarations: tuple[Declaration, ...]
    base_url: str = "/"
    servers: tuple[tuple[str, str], ...] = ()
    title: Optional[str] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def aliases(self) -> list[TypeAliasDecl]:
        return [decl for decl in self.declarations if isinstance(decl, TypeAliasDecl)]

    def enums(self) -> list[EnumDecl]:
        return [decl for decl in self.declarations if isinstance(decl, EnumDecl)]

    def functions(self) -> list[FunctionDecl]:
        return [decl for decl in self.declarations if isinstance(decl, FunctionDecl)]

    def declaration(self, name: str) -> Declaration:
        """Return the declaration called ``name``."""
        for decl in self.declarations:
            if decl.name == name:
                return decl
        raise KeyError(name)

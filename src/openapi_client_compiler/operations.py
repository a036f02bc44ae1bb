"""Synthesize one client function per OpenAPI operation."""

from __future__ import annotations

import logging
import re
from typing import Any, Literal, Optional, TypeAlias

from .context import GenerationContext
from .naming import HTTP_VERBS, operation_name, to_identifier
from .only_mode import OnlyMode
from .resolver import reference_name
from .schema_compiler import SchemaCompiler, get_schema_from_content
from .type_nodes import (
    AttributeExpr,
    CallExpr,
    ConstExpr,
    DictExpr,
    Expr,
    FunctionDecl,
    NameExpr,
    OrExpr,
    ParameterDef,
    TemplateExpr,
    TypeNode,
    TypeRef,
)

logger = logging.getLogger(__name__)

ResponseKind: TypeAlias = Literal["json", "text", "blob"]

RUNTIME_NAMESPACE = "runtime"
QS_NAMESPACE = "qs"
OPTIONS_ARGUMENT = "opts"
REQUEST_OPTS_TYPE = f"{RUNTIME_NAMESPACE}.RequestOpts"

# Request content types in priority order, mapped to the runtime body wrapper.
CONTENT_TYPE_WRAPPERS: tuple[tuple[str, str], ...] = (
    ("*/*", "json"),
    ("application/json", "json"),
    ("application/x-www-form-urlencoded", "form"),
    ("multipart/form-data", "multipart"),
)
FETCH_FUNCTIONS: dict[str, str] = {
    "json": "fetch_json",
    "text": "fetch_text",
    "blob": "fetch_blob",
}

_JSON_MIME_TYPES = frozenset(mime for mime, kind in CONTENT_TYPE_WRAPPERS if kind == "json")
_DEEP_OBJECT_NAME_RE = re.compile(r"^(.+?)\[(.*?)\]")
_PATH_TEMPLATE_RE = re.compile(r"\{(.+?)\}")


def is_json_mime_type(mime: str) -> bool:
    """Return whether responses of media type ``mime`` are decoded as JSON."""
    return mime in _JSON_MIME_TYPES or "json" in mime.lower()


def get_formatter(parameter: dict[str, Any]) -> str:
    """Return the query formatter for a parameter's ``style`` and ``explode``."""
    style = parameter.get("style", "form")
    explode = parameter.get("explode") is True
    if explode and style == "deepObject":
        return "deep"
    if explode:
        return "explode"
    if style == "spaceDelimited":
        return "space"
    if style == "pipeDelimited":
        return "pipe"
    return "form"


def support_deep_objects(parameters: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Merge bracket-suffixed parameters (``filter[x]``) into deepObject parameters."""
    result: list[dict[str, Any]] = []
    merged: dict[str, dict[str, Any]] = {}
    for parameter in parameters:
        match = _DEEP_OBJECT_NAME_RE.match(str(parameter.get("name", "")))
        if match is None:
            result.append(parameter)
            continue
        name, prop = match.groups()
        combined = merged.get(name)
        if combined is None:
            combined = {
                "name": name,
                "in": parameter.get("in"),
                "style": "deepObject",
                "explode": True,
                "schema": {"type": "object", "properties": {}},
            }
            merged[name] = combined
            result.append(combined)
        combined["schema"]["properties"][prop] = parameter.get("schema")
    return result


def create_url_expression(
    path: str,
    path_args: dict[str, str],
    query: Optional[Expr] = None,
) -> TemplateExpr:
    """Turn an OpenAPI path template into an f-string with quoted arguments."""
    pieces = _PATH_TEMPLATE_RE.split(path)
    parts: list[str | Expr] = []
    for index, piece in enumerate(pieces):
        if index % 2 == 0:
            if piece:
                parts.append(piece)
            continue
        argument = path_args.get(piece, to_identifier(piece))
        parts.append(_runtime_call("quote", NameExpr(argument)))
    if query is not None:
        parts.append(query)
    return TemplateExpr(tuple(parts))


class OperationSynthesizer:
    """Build ``FunctionDecl`` objects for the operations of a document."""

    def __init__(self, context: GenerationContext, compiler: SchemaCompiler) -> None:
        self._context = context
        self._compiler = compiler

    def synthesize(self, path: str, verb: str, path_item: dict[str, Any]) -> Optional[FunctionDecl]:
        """Return the function for ``verb`` on ``path``, or None when it is skipped."""
        if verb.lower() not in HTTP_VERBS:
            return None
        operation = path_item.get(verb)
        if not isinstance(operation, dict):
            return None
        if self._context.options.skips_tags(operation.get("tags")):
            logger.debug("Skipping %s %s: filtered by tags", verb.upper(), path)
            return None

        method = verb.upper()
        name = self._unique_operation_name(operation_name(verb, path, operation.get("operationId")))

        parameters = self.merge_parameters(path_item, operation)
        if self._context.is_converted:
            parameters = support_deep_objects(parameters)
        arg_names = assign_argument_names(parameters)
        pairs = list(zip(parameters, arg_names))
        required = [(param, arg) for param, arg in pairs if param.get("required")]
        optional = [(param, arg) for param, arg in pairs if not param.get("required")]

        positional = [
            ParameterDef(name=arg, type=self._parameter_type(param)) for param, arg in required
        ]

        body_arg, content_kind = None, None
        request_body = operation.get("requestBody")
        if request_body is not None:
            body_arg, content_kind, body_param = self._body_parameter(request_body, arg_names)
            positional.append(body_param)

        optional_params = tuple(
            ParameterDef(name=arg, type=self._parameter_type(param), optional=True)
            for param, arg in optional
        )

        responses = operation.get("responses")
        response_kind = self.get_response_type(responses)
        url = create_url_expression(
            path,
            {str(param.get("name")): arg for param, arg in pairs if param.get("in") == "path"},
            _query_expression([(param, arg) for param, arg in pairs if param.get("in") == "query"]),
        )
        init = _request_init(
            method,
            body_arg,
            content_kind,
            [(param, arg) for param, arg in pairs if param.get("in") == "header"],
        )

        return_type: Optional[TypeNode] = None
        if response_kind in ("json", "blob") and isinstance(responses, dict):
            return_type = self._compiler.get_type_from_responses(responses, OnlyMode.READ_ONLY)

        call: Expr = _runtime_call(FETCH_FUNCTIONS[response_kind], url, init)
        if self._context.options.optimistic:
            call = _runtime_call("ok", call)

        summary = operation.get("summary") or operation.get("description")
        return FunctionDecl(
            name=name,
            parameters=tuple(positional),
            optional_parameters=optional_params,
            options_parameter=ParameterDef(
                name=OPTIONS_ARGUMENT, type=TypeRef(REQUEST_OPTS_TYPE), optional=True
            ),
            return_expr=call,
            return_type=return_type,
            docstring=summary.strip() if isinstance(summary, str) and summary.strip() else None,
            method=method,
            path=path,
        )

    def merge_parameters(
        self,
        path_item: dict[str, Any],
        operation: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Merge path-level and operation-level parameters.

        An operation-level parameter replaces the path-level parameter with the
        same ``(name, in)`` pair; all others are kept in declaration order.
        """
        resolver = self._context.resolver
        merged = [
            param
            for param in resolver.resolve_array(path_item.get("parameters"))
            if isinstance(param, dict)
        ]
        for param in resolver.resolve_array(operation.get("parameters")):
            if not isinstance(param, dict):
                continue
            key = (param.get("name"), param.get("in"))
            for index, existing in enumerate(merged):
                if (existing.get("name"), existing.get("in")) == key:
                    merged[index] = param
                    break
            else:
                merged.append(param)
        return merged

    def get_response_type(self, responses: Any) -> ResponseKind:
        """Classify how the response payload of an operation is read."""
        if not isinstance(responses, dict):
            return "text"
        resolved = [self._context.resolver.resolve(response) for response in responses.values()]
        content_types = [
            str(mime)
            for response in resolved
            if isinstance(response, dict) and isinstance(response.get("content"), dict)
            for mime in response["content"]
        ]
        if not content_types:
            return "text"
        if any(is_json_mime_type(mime) for mime in content_types):
            return "json"
        if any(mime.startswith("text/") for mime in content_types):
            return "text"
        return "blob"

    def _unique_operation_name(self, name: str) -> str:
        return self._context.allocator.get_unique_alias(name)

    def _parameter_type(self, parameter: dict[str, Any]) -> TypeNode:
        schema = parameter.get("schema")
        if schema is None and isinstance(parameter.get("content"), dict):
            schema = get_schema_from_content(parameter["content"])
        return self._compiler.get_type_from_schema(schema, None, OnlyMode.WRITE_ONLY)

    def _body_parameter(
        self,
        request_body: Any,
        arg_names: list[str],
    ) -> tuple[str, Optional[str], ParameterDef]:
        body = self._context.resolver.resolve(request_body)
        content = body.get("content") if isinstance(body, dict) else None
        if not isinstance(content, dict):
            content = {}
        schema = get_schema_from_content(content)
        body_type = self._compiler.get_type_from_schema(schema, None, OnlyMode.WRITE_ONLY)
        if isinstance(body_type, TypeRef):
            base_name = body_type.name
        else:
            base_name = reference_name(schema) or "body"
        body_arg = to_identifier(base_name)
        reserved = (OPTIONS_ARGUMENT, RUNTIME_NAMESPACE, QS_NAMESPACE)
        if body_arg in arg_names or body_arg in reserved:
            body_arg = f"{body_arg}_body"
        content_kind = next((kind for mime, kind in CONTENT_TYPE_WRAPPERS if mime in content), None)
        required = isinstance(body, dict) and body.get("required") is True
        body_param = ParameterDef(name=body_arg, type=body_type, optional=not required)
        return body_arg, content_kind, body_param


def assign_argument_names(parameters: list[dict[str, Any]]) -> list[str]:
    """Return one argument name per parameter, in parameter order.

    Parameters are named shortest name first; a name already taken by a
    parameter in another location, or by a module name the generated body
    uses, gets the parameter location appended.
    """
    names: list[Optional[str]] = [None] * len(parameters)
    taken: set[str] = {RUNTIME_NAMESPACE, QS_NAMESPACE, OPTIONS_ARGUMENT}
    order = sorted(
        range(len(parameters)),
        key=lambda index: len(str(parameters[index].get("name", ""))),
    )
    for index in order:
        parameter = parameters[index]
        identifier = to_identifier(str(parameter.get("name", "")))
        if identifier in taken:
            identifier = f"{identifier}_{to_identifier(str(parameter.get('in', 'param')))}"
        taken.add(identifier)
        names[index] = identifier
    return [name for name in names if name is not None]


def _runtime_call(function: str, *args: Expr) -> CallExpr:
    return CallExpr(AttributeExpr(NameExpr(RUNTIME_NAMESPACE), function), tuple(args))


def _qs_call(function: str, *args: Expr) -> CallExpr:
    return CallExpr(AttributeExpr(NameExpr(QS_NAMESPACE), function), tuple(args))


def _query_expression(query: list[tuple[dict[str, Any], str]]) -> Optional[Expr]:
    if not query:
        return None
    groups: dict[str, list[tuple[str, str]]] = {}
    for param, arg in query:
        groups.setdefault(get_formatter(param), []).append((str(param["name"]), arg))
    return _qs_call(
        "query",
        *(
            _qs_call(
                formatter,
                DictExpr(tuple((ConstExpr(name), NameExpr(arg)) for name, arg in entries)),
            )
            for formatter, entries in groups.items()
        ),
    )


def _request_init(
    method: str,
    body_arg: Optional[str],
    content_kind: Optional[str],
    headers: list[tuple[dict[str, Any], str]],
) -> Expr:
    opts_or_empty = OrExpr(NameExpr(OPTIONS_ARGUMENT), DictExpr(()))
    entries: list[tuple[Optional[Expr], Expr]] = [(None, opts_or_empty)]
    if method != "GET":
        entries.append((ConstExpr("method"), ConstExpr(method)))
    if body_arg is not None:
        entries.append((ConstExpr("body"), NameExpr(body_arg)))
    if headers:
        inherited = OrExpr(
            CallExpr(AttributeExpr(opts_or_empty, "get"), (ConstExpr("headers"),)),
            DictExpr(()),
        )
        header_entries: list[tuple[Optional[Expr], Expr]] = [(None, inherited)]
        header_entries.extend(
            (ConstExpr(str(param["name"])), NameExpr(arg)) for param, arg in headers
        )
        entries.append((ConstExpr("headers"), DictExpr(tuple(header_entries))))
    init: Expr = DictExpr(tuple(entries))
    if content_kind is not None:
        init = _runtime_call(content_kind, init)
    return init


__all__ = [
    "CONTENT_TYPE_WRAPPERS",
    "FETCH_FUNCTIONS",
    "OperationSynthesizer",
    "assign_argument_names",
    "create_url_expression",
    "get_formatter",
    "is_json_mime_type",
    "support_deep_objects",
]

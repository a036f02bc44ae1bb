"""Local JSON-pointer reference resolution."""

from __future__ import annotations

import re
from typing import Any, Optional
from urllib.parse import unquote

from .errors import ReferenceNotFoundError, UnsupportedReferenceError
from .json_types import JSONObject

_LOCAL_REF_PREFIX = "#/"
_LEADING_NON_WORD_RE = re.compile(r"^\W+")


def is_reference(node: Any) -> bool:
    """Return whether ``node`` is a reference object."""
    return isinstance(node, dict) and "$ref" in node


def ref_basename(ref: str) -> str:
    """Return the last path component of ``ref``."""
    return ref.rsplit("/", maxsplit=1)[-1]


def ref_name(ref: str) -> str:
    """Return a name for ``ref`` usable as the basis of a type alias.

    This is usually the basename, unless it starts with a digit, in which case
    the whole pointer is used with leading non-word characters stripped.
    """
    base = ref_basename(ref)
    if base[:1].isdigit():
        return _LEADING_NON_WORD_RE.sub("", ref)
    return base


def reference_name(node: Any) -> Optional[str]:
    """Return the basename of a reference object, or None for inline nodes."""
    if is_reference(node):
        return ref_basename(node["$ref"])
    return None


def escape_pointer_token(token: str) -> str:
    """Escape one JSON-pointer token."""
    return token.replace("~", "~0").replace("/", "~1")


def _unescape_pointer_token(token: str) -> str:
    return unquote(token.replace("~1", "/").replace("~0", "~"))


class Resolver:
    """Resolve local references against one in-memory document."""

    def __init__(self, document: JSONObject) -> None:
        self._document = document

    @property
    def document(self) -> JSONObject:
        """Document references are resolved against."""
        return self._document

    def resolve(self, node: Any) -> Any:
        """Return the node a reference points to, or ``node`` unchanged.

        Raises:
            UnsupportedReferenceError: For references outside this document.
            ReferenceNotFoundError: When the pointer does not match any node.
        """
        if not is_reference(node):
            return node
        ref = node["$ref"]
        if not isinstance(ref, str) or not ref.startswith(_LOCAL_REF_PREFIX):
            raise UnsupportedReferenceError(
                f"External refs are not supported ({ref}); bundle the document first"
            )

        current: Any = self._document
        for raw_token in ref[len(_LOCAL_REF_PREFIX) :].split("/"):
            token = _unescape_pointer_token(raw_token)
            if isinstance(current, dict) and token in current:
                current = current[token]
            elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
                current = current[int(token)]
            else:
                raise ReferenceNotFoundError(f"Unresolvable reference: {ref}")
        return current

    def resolve_array(self, nodes: Optional[list[Any]]) -> list[Any]:
        """Resolve every entry of an optional list."""
        if not nodes:
            return []
        return [self.resolve(node) for node in nodes]

"""Naming helpers for generated Python identifiers."""

from __future__ import annotations

import keyword
import logging
import re
from collections.abc import Iterable
from typing import Optional

logger = logging.getLogger(__name__)

HTTP_VERBS: tuple[str, ...] = (
    "get",
    "put",
    "post",
    "delete",
    "options",
    "head",
    "patch",
    "trace",
)

# Names the generated module imports or defines itself.
RESERVED_MODULE_NAMES: tuple[str, ...] = (
    "Annotated",
    "Any",
    "BASE_URL",
    "BaseModel",
    "ConfigDict",
    "Enum",
    "Field",
    "Literal",
    "Optional",
    "RootModel",
    "SERVERS",
    "Union",
    "qs",
    "runtime",
)

_IDENTIFIER_SANITIZE_RE = re.compile(r"[^0-9a-zA-Z_]+")
_MULTIPLE_UNDERSCORES_RE = re.compile(r"_+")
_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+\d*|[A-Z]+\d*|\d+")
_INVALID_OPERATION_ID_RE = re.compile(r"[^\w\s]")
_PATH_PARAM_RE = re.compile(r"\{(.+?)\}")


def sanitize_identifier(raw: str, *, lowercase: bool = True) -> str:
    """Convert arbitrary text into a valid Python identifier."""
    text = raw.lower() if lowercase else raw
    text = _IDENTIFIER_SANITIZE_RE.sub("_", text)
    text = _MULTIPLE_UNDERSCORES_RE.sub("_", text).strip("_")
    if not text:
        text = "value"
    if text[0].isdigit():
        text = f"x_{text}"
    if keyword.iskeyword(text):
        text = f"{text}_"
    return text


def split_words(raw: str) -> list[str]:
    """Split camelCase, PascalCase, kebab and snake text into words."""
    return _WORD_RE.findall(raw)


def _fix_identifier(text: str) -> str:
    if text[:1].isdigit():
        text = f"_{text}"
    if keyword.iskeyword(text) or text in {"True", "False", "None"}:
        text = f"{text}_"
    return text


def to_identifier(raw: str) -> str:
    """Return the snake_case identifier used for functions and arguments."""
    words = split_words(raw)
    if not words:
        return "value"
    return _fix_identifier("_".join(word.lower() for word in words))


def pascal_case(raw: str) -> str:
    """Return the PascalCase identifier used for generated type names."""
    words = split_words(raw)
    if not words:
        return "Model"
    return _fix_identifier("".join(word[:1].upper() + word[1:].lower() for word in words))


def upper_first(raw: str) -> str:
    """Upper-case the first character and keep the rest unchanged."""
    return raw[:1].upper() + raw[1:]


def enum_member_name(value: str | int | float | bool) -> str:
    """Return the ``Enum`` member identifier for one enum value."""
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, str):
        text = upper_first(value)
    else:
        text = str(value)
    return sanitize_identifier(text, lowercase=False)


def operation_identifier(operation_id: Optional[str]) -> Optional[str]:
    """Return a function name for ``operation_id`` when it is usable."""
    if not operation_id or _INVALID_OPERATION_ID_RE.search(operation_id):
        return None
    words = split_words(operation_id)
    if not words:
        return None
    candidate = "_".join(word.lower() for word in words)
    if candidate.isidentifier() and not keyword.iskeyword(candidate):
        return candidate
    return None


def operation_name(verb: str, path: str, operation_id: Optional[str]) -> str:
    """Name an operation from its ``operationId``, or from its verb and path."""
    identifier = operation_identifier(operation_id)
    if identifier:
        return identifier
    path = _PATH_PARAM_RE.sub(r"by \1", path, count=1)
    path = _PATH_PARAM_RE.sub(r"and \1", path, count=1)
    return to_identifier(f"{verb} {path}")


class IdentifierAllocator:
    """Hand out collision-free names within one generation run.

    The first request for a name returns it unchanged; later requests for
    the same name get an incrementing numeric suffix.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._usage: dict[str, int] = {name: 1 for name in reserved}

    def get_unique_alias(self, name: str) -> str:
        """Reserve and return a unique variant of ``name``."""
        used = self._usage.get(name, 0)
        if used:
            candidate = name
            while candidate in self._usage:
                used += 1
                candidate = f"{name}{used}"
            self._usage[name] = used
            logger.debug("Name %s already taken, using %s", name, candidate)
            name = candidate
        self._usage[name] = 1
        return name

    def is_used(self, name: str) -> bool:
        """Return whether ``name`` has been handed out."""
        return name in self._usage

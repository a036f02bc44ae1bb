"""Reading OpenAPI documents from disk."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .json_types import JSONObject

logger = logging.getLogger(__name__)


class OpenAPILoadError(RuntimeError):
    """Raised when a source OpenAPI document cannot be loaded."""


def load_openapi_document(path: Path) -> JSONObject:
    """Load an OpenAPI document from YAML or JSON.

    JSON documents are read through the YAML loader as well.

    Args:
        path (Path): Location of the document.

    Returns:
        JSONObject: The parsed top-level mapping.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise OpenAPILoadError(f"Failed to read OpenAPI file {path}: {exc}") from exc
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise OpenAPILoadError(f"Failed to parse {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise OpenAPILoadError(
            f"{path} must contain a mapping at the top level, got {type(document).__name__}"
        )
    logger.debug("Loaded %s with %d top-level keys", path, len(document))
    return document


def get_openapi_version(document: JSONObject) -> str:
    """Return the declared OpenAPI version string."""
    version = document.get("openapi")
    if isinstance(version, str) and version.strip():
        return version.strip()
    if "swagger" in document:
        raise OpenAPILoadError(
            "Swagger 2 documents must be converted to OpenAPI 3 first (then pass --converted)"
        )
    raise OpenAPILoadError("Missing or invalid 'openapi' version field")


def ensure_supported_version(version: str) -> None:
    """Reject documents older than OpenAPI 3."""
    major, _, _ = version.partition(".")
    if not major.isdigit():
        raise OpenAPILoadError(f"Unable to parse OpenAPI version: {version}")
    if int(major) < 3:
        raise OpenAPILoadError(f"Unsupported OpenAPI version {version}; only v3+ is supported")

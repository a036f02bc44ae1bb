"""Writing and formatting generated client modules."""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# Docstrings are only emitted where the document provides them.
_GENERATED_RUFF_IGNORE = "D100,D101,D102,D103,E501"

_RUFF_STEPS: tuple[tuple[str, ...], ...] = (
    ("format",),
    ("check", "--fix", "--ignore", _GENERATED_RUFF_IGNORE),
    ("format",),
)


class WriteError(RuntimeError):
    """Raised when output files cannot be written."""


def write_module(path: Path, source: str, *, overwrite: bool = False) -> None:
    """Write a generated module, creating parent directories as needed.

    Args:
        path (Path): Destination file.
        source (str): Python source to write.
        overwrite (bool): Whether an existing file may be replaced.
    """
    if path.is_dir():
        raise WriteError(f"Output path is a directory: {path}")
    if path.exists() and not overwrite:
        raise WriteError(f"Output file already exists: {path} (use --force to replace it)")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"Failed to write {path}: {exc}") from exc
    logger.debug("Wrote %d characters to %s", len(source), path)


def format_generated_file(path: Path) -> None:
    """Format a generated module with ruff and apply its safe fixes."""
    for step in _RUFF_STEPS:
        _run_ruff(path, step)


def _run_ruff(path: Path, args: tuple[str, ...]) -> None:
    command = [sys.executable, "-m", "ruff", *args, str(path)]
    logger.debug("Running %s", " ".join(command))
    try:
        subprocess.run(command, check=True, capture_output=True, text=True)
    except OSError as exc:
        raise WriteError(f"Failed to execute ruff {args[0]} for {path}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        error_text = exc.stderr.strip() or exc.stdout.strip() or str(exc)
        raise WriteError(f"ruff {args[0]} failed for {path}: {error_text}") from exc

"""
Filesystem utilities for patchkeeper.

Safe helpers for reading the graph, vulnerability and registry snapshot
documents patchkeeper consumes. All filesystem errors are normalized to
``FileOperationError``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

from patchkeeper.utils.logger import get_logger
from patchkeeper.constants import MAX_FILE_SIZE
from patchkeeper.exceptions import FileOperationError

logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Ensure *path* exists and is a regular file; return it resolved."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Read a text file, refusing files larger than *max_size*.

    Args:
        file_path: Path to the file.
        max_size: Maximum allowed file size in bytes (None disables limit).
        encoding: Text encoding.

    Returns:
        File contents as a string.

    Raises:
        FileOperationError: The file is missing, too large or unreadable.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        return path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc


def read_json_file(file_path: PathLike, *, max_size: Optional[int] = MAX_FILE_SIZE) -> Any:
    """Read and decode a JSON document.

    Raises:
        FileOperationError: The file cannot be read or is not valid JSON.
    """
    text = safe_read_file(file_path, max_size=max_size)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise FileOperationError(
            f"Invalid JSON: {exc}",
            file_path=str(file_path),
            operation="parse",
            original_error=exc,
        ) from exc

"""JSON exporter for file lists (machine-friendly format)."""

import json
from pathlib import Path
from typing import Iterable, List, Optional, Union


def to_json(
    paths: Iterable[Union[str, Path]],
    base: Optional[Path] = None,
    indent: Optional[int] = 2,
) -> str:
    """
    Convert a list of files to a JSON array.

    Args:
        paths: Files to export.
        base: Optional base path for relative path display.
        indent: JSON indentation level (None for a single line).

    Returns:
        JSON string: an array of path strings.
    """
    if base is None:
        base = Path.cwd()

    items: List[str] = [_get_path_str(Path(path), base) for path in paths]
    return json.dumps(items, indent=indent)


def _get_path_str(path: Path, base: Path) -> str:
    """Get the string representation of a path."""
    try:
        rel_path = path.relative_to(base)
        return str(rel_path).replace("\\", "/")
    except ValueError:
        return str(path).replace("\\", "/")

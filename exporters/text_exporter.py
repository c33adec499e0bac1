"""Plain-text exporter for file lists."""

from pathlib import Path
from typing import Iterable, Optional, Union

from scanner.discovery import get_relative_path


def to_text(
    paths: Iterable[Union[str, Path]],
    base: Optional[Path] = None,
    bullet: str = "- ",
) -> str:
    """
    Convert a list of files to one line per file.

    Args:
        paths: Files to export.
        base: Optional base path for relative path display.
        bullet: Prefix written before each path.

    Returns:
        Newline-separated list, empty string for no files.
    """
    if base is None:
        base = Path.cwd()

    lines = []
    for path in paths:
        rel_path = get_relative_path(str(path), base)
        lines.append(f"{bullet}{rel_path.as_posix()}")
    return "\n".join(lines)

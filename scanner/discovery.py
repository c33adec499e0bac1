"""Discovery of files under node_modules that a crawl never reached."""

import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from graph.model import ReachableSet
from .resolver import NODE_MODULES


def find_node_modules_roots(paths: Iterable[str]) -> List[Path]:
    """
    Find the outermost ``node_modules`` directory of each path.

    Args:
        paths: Absolute paths, typically the entries of a reachable set.

    Returns:
        Sorted, deduplicated list of ``node_modules`` directories.
    """
    roots = set()
    for path in paths:
        parts = Path(path).parts
        if NODE_MODULES in parts:
            roots.add(Path(*parts[: parts.index(NODE_MODULES) + 1]))
    return sorted(roots)


def iter_unused_files(
    reachable: ReachableSet,
    project_dir: Optional[Path] = None,
) -> Iterator[Path]:
    """
    Iterate over files inside ``node_modules`` that the crawl never visited.

    Symlinks are reported like files and never followed; the directories
    they point at are walked where they actually live.

    Args:
        reachable: Result of a crawl.
        project_dir: Project whose own ``node_modules`` is always checked,
                     even if the crawl never entered it.

    Yields:
        Paths of unused files and symlinks, in sorted walk order.
    """
    visited = set(reachable.paths)
    roots = set(find_node_modules_roots(visited))
    if project_dir is not None:
        own = Path(os.path.realpath(project_dir)) / NODE_MODULES
        if own.is_dir():
            roots.add(own)

    def _walk(current: Path) -> Iterator[Path]:
        try:
            entries = sorted(current.iterdir())
        except PermissionError:
            return

        for entry in entries:
            if entry.is_symlink():
                if str(entry) not in visited:
                    yield entry
            elif entry.is_dir():
                yield from _walk(entry)
            elif entry.is_file():
                if str(entry) not in visited:
                    yield entry

    for root in _outermost(roots):
        yield from _walk(root)


def get_relative_path(file_path: str, base: Path) -> Path:
    """Get the path relative to base, handling edge cases."""
    try:
        return Path(file_path).relative_to(base)
    except ValueError:
        return Path(file_path)


def _outermost(roots: Iterable[Path]) -> List[Path]:
    """Drop roots nested inside another root so nothing is walked twice."""
    result: List[Path] = []
    for root in sorted(roots):
        if not any(parent == root or parent in root.parents for parent in result):
            result.append(root)
    return result

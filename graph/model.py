"""Data model for the files and diagnostics collected during a crawl."""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional


@dataclass(frozen=True)
class File:
    """
    A filesystem entry reached while resolving modules.

    ``is_file`` is True for source content that gets parsed further. It is
    False for entries that only take part in resolution (a symlinked package
    root or a located ``package.json``).
    """

    path: str
    is_file: bool


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem found while scanning ``file``."""

    file: str
    message: str

    def __str__(self) -> str:
        return f"{self.file}: {self.message}"


class ReachableSet:
    """
    The files visited by a crawl, keyed by canonical path.

    Insertion order is kept so output is deterministic. Diagnostics are kept
    separately, one per referencing file; a later one replaces an earlier one.
    """

    def __init__(self):
        self._files: Dict[str, File] = {}
        self._diagnostics: Dict[str, Diagnostic] = {}

    @property
    def files(self) -> List[File]:
        """Return all visited files in visiting order."""
        return list(self._files.values())

    @property
    def paths(self) -> List[str]:
        """Return the paths of all visited files in visiting order."""
        return list(self._files)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        """Return the latest diagnostic recorded for each file."""
        return list(self._diagnostics.values())

    def add(self, file: File) -> bool:
        """
        Record a visited file.

        Returns:
            True if the path was new, False if it had already been visited.
        """
        if file.path in self._files:
            return False
        self._files[file.path] = file
        return True

    def get(self, path: str) -> Optional[File]:
        """Get the visited file for a path, if any."""
        return self._files.get(path)

    def add_diagnostic(self, diagnostic: Diagnostic) -> None:
        """Record a diagnostic, replacing any earlier one for the same file."""
        self._diagnostics[diagnostic.file] = diagnostic

    def get_diagnostic(self, path: str) -> Optional[Diagnostic]:
        """Get the diagnostic recorded for a file, if any."""
        return self._diagnostics.get(path)

    def has_diagnostics(self) -> bool:
        """Check if any diagnostics were recorded."""
        return bool(self._diagnostics)

    def source_files(self) -> Iterator[File]:
        """Iterate over visited entries that are actual source files."""
        for file in self._files.values():
            if file.is_file:
                yield file

    def __iter__(self) -> Iterator[File]:
        return iter(list(self._files.values()))

    def __len__(self) -> int:
        """Return the number of visited entries."""
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        """Check if a path (or File) has been visited."""
        if isinstance(path, File):
            path = path.path
        return path in self._files

    def __repr__(self) -> str:
        source_count = sum(1 for _ in self.source_files())
        return f"ReachableSet(entries={len(self._files)}, files={source_count}, diagnostics={len(self._diagnostics)})"

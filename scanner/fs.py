"""Filesystem access used by the resolver and the crawl driver."""

import os


class OsFileSystem:
    """
    Read-only access to the real filesystem.

    The resolver, crawler and driver accept any object with these three
    methods, so tests can swap in a recording or in-memory variant.
    """

    def lstat(self, path: str) -> os.stat_result:
        """Stat a path without following a final symlink. Raises OSError if absent."""
        return os.lstat(path)

    def realpath(self, path: str) -> str:
        """Resolve all symlinks in a path."""
        return os.path.realpath(path)

    def read_text(self, path: str) -> str:
        """Read a file as UTF-8 text."""
        with open(path, encoding="utf-8", errors="replace") as handle:
            return handle.read()


DEFAULT_FS = OsFileSystem()
